# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Unit Tests for Stability Analysis

Tests cover:
- Hurwitz matrix construction
- Routh-Hurwitz classification (stable, marginal, unstable)
- Sign normalization and scale invariance
- Routh table, sign changes and special cases
- Symbolic stability ranges
- Naslin coefficients
- Eigenvalue stability (continuous and discrete)
- Agreement between Routh-Hurwitz and eigenvalues

Test Structure:
- TestHurwitzMatrix
- TestRouthHurwitz
- TestRouthArray
- TestSymbolicHurwitz
- TestNaslin
- TestStabilityAnalysis
- TestCriteriaAgreement
"""

import unittest

import numpy as np
import sympy as sp
from numpy.testing import assert_allclose, assert_array_equal

from ctrlcourse.control.exceptions import MalformedPolynomialError, SingularOperationError
from ctrlcourse.control.stability import (
    analyze_stability,
    hurwitz_matrix,
    naslin_coefficients,
    routh_array,
    routh_hurwitz,
    routh_hurwitz_symbolic,
)
from ctrlcourse.control.state_space import StateSpaceModel
from ctrlcourse.control.transfer_function import TransferFunction

# ============================================================================
# Hurwitz Matrix
# ============================================================================


class TestHurwitzMatrix(unittest.TestCase):
    """Test Hurwitz matrix layout."""

    def test_third_order(self):
        H = hurwitz_matrix([3, 2, 2, 5])
        assert_array_equal(H, [[2, 5, 0], [3, 2, 0], [0, 2, 5]])

    def test_fourth_order_pattern(self):
        H = hurwitz_matrix([1, 2, 3, 4, 5])
        expected = [
            [2, 4, 0, 0],
            [1, 3, 5, 0],
            [0, 2, 4, 0],
            [0, 1, 3, 5],
        ]
        assert_array_equal(H, expected)

    def test_first_order(self):
        assert_array_equal(hurwitz_matrix([2, 1]), [[1.0]])

    def test_constant_rejected(self):
        with self.assertRaises(MalformedPolynomialError):
            hurwitz_matrix([1])


# ============================================================================
# Routh-Hurwitz Criterion
# ============================================================================


class TestRouthHurwitz(unittest.TestCase):
    """Test the Hurwitz minor test."""

    def test_unstable_third_order(self):
        """5s³ + 2s² + 2s + 3: Δ2 = 2·2 - 5·3 = -11."""
        result = routh_hurwitz([3, 2, 2, 5])
        self.assertEqual(result["classification"], "unstable")
        self.assertTrue(result["is_unstable"])
        self.assertEqual(result["failed_minor"], 2)
        self.assertIsNone(result["failed_coefficient"])
        assert_allclose(result["minors"], [2.0, -11.0, -55.0])

    def test_stable_third_order(self):
        """(s + 1)(s + 2)(s + 3)."""
        result = routh_hurwitz([6, 11, 6, 1])
        self.assertEqual(result["classification"], "stable")
        self.assertTrue(result["is_stable"])
        self.assertFalse(result["is_unstable"])
        self.assertTrue(np.all(result["minors"] > 0))
        self.assertIsNone(result["failed_minor"])

    def test_marginal_vanishing_minor(self):
        """s³ + s² + s + 1 = (s + 1)(s² + 1)."""
        result = routh_hurwitz([1, 1, 1, 1])
        self.assertEqual(result["classification"], "marginally_stable")
        self.assertTrue(result["is_marginally_stable"])
        self.assertEqual(result["failed_minor"], 2)

    def test_marginal_zero_coefficient(self):
        """s² + 1 has roots ±j: a zero coefficient alone is not instability."""
        result = routh_hurwitz([1, 0, 1])
        self.assertEqual(result["classification"], "marginally_stable")
        self.assertEqual(result["failed_coefficient"], 1)

    def test_zero_coefficient_with_negative_minor(self):
        """s³ + 1 has roots in the right half-plane."""
        result = routh_hurwitz([1, 0, 0, 1])
        self.assertEqual(result["classification"], "unstable")
        self.assertEqual(result["failed_minor"], 2)

    def test_vanishing_minors_with_rhp_roots(self):
        """s⁴ + 6s² + 25 has roots ±1 ± 2j although every minor is zero."""
        result = routh_hurwitz([25, 0, 6, 0, 1])
        assert_allclose(result["minors"], np.zeros(4), atol=1e-9)
        self.assertEqual(result["classification"], "unstable")
        self.assertTrue(result["is_unstable"])
        self.assertEqual(result["failed_coefficient"], 1)
        self.assertEqual(result["failed_minor"], 1)
        self.assertEqual(routh_array([25, 0, 6, 0, 1])["sign_changes"], 2)

    def test_marginal_biquadratic(self):
        """s⁴ + 5s² + 4 = (s² + 1)(s² + 4) stays on the imaginary axis."""
        result = routh_hurwitz([4, 0, 5, 0, 1])
        self.assertEqual(result["classification"], "marginally_stable")

    def test_negative_coefficient(self):
        result = routh_hurwitz([1, -1, 1])
        self.assertEqual(result["classification"], "unstable")
        self.assertEqual(result["failed_coefficient"], 1)
        self.assertEqual(result["minors"].size, 0)
        self.assertIn("negative", result["reason"])

    def test_sign_normalization(self):
        """Multiplying by -1 does not change the roots."""
        result = routh_hurwitz([-6, -11, -6, -1])
        self.assertEqual(result["classification"], "stable")
        assert_array_equal(result["coefficients"], [6, 11, 6, 1])

    def test_scale_invariance(self):
        for scale in (1e-6, 1.0, 1e6):
            with self.subTest(scale=scale):
                result = routh_hurwitz(scale * np.array([6, 11, 6, 1]))
                self.assertEqual(result["classification"], "stable")

    def test_first_order(self):
        self.assertTrue(routh_hurwitz([2, 1])["is_stable"])
        self.assertTrue(routh_hurwitz([-2, 1])["is_unstable"])

    def test_hurwitz_matrix_included(self):
        result = routh_hurwitz([3, 2, 2, 5])
        assert_array_equal(result["hurwitz_matrix"], hurwitz_matrix([3, 2, 2, 5]))

    def test_invalid_input(self):
        with self.assertRaises(MalformedPolynomialError):
            routh_hurwitz([])
        with self.assertRaises(MalformedPolynomialError):
            routh_hurwitz([1])
        with self.assertRaises(MalformedPolynomialError):
            routh_hurwitz([1, 2, 0])  # a_m = 0
        with self.assertRaises(MalformedPolynomialError):
            routh_hurwitz([1, 1j, 1])

    def test_result_is_value_error(self):
        """Malformed input can be caught as ValueError."""
        with self.assertRaises(ValueError):
            routh_hurwitz([1, np.nan, 1])


# ============================================================================
# Routh Array
# ============================================================================


class TestRouthArray(unittest.TestCase):
    """Test the Routh table."""

    def test_two_right_half_plane_roots(self):
        """s³ + s² + 2s + 8."""
        result = routh_array([8, 2, 1, 1])
        assert_allclose(result["first_column"], [1.0, 1.0, -6.0, 8.0])
        self.assertEqual(result["sign_changes"], 2)
        self.assertEqual(result["epsilon_substitutions"], 0)

    def test_sign_changes_match_roots(self):
        coefficients = [8, 2, 1, 1]
        roots = np.roots(coefficients[::-1])
        self.assertEqual(routh_array(coefficients)["sign_changes"], int(np.sum(roots.real > 0)))

    def test_stable_polynomial_no_sign_changes(self):
        result = routh_array([6, 11, 6, 1])
        self.assertEqual(result["sign_changes"], 0)
        self.assertTrue(np.all(result["first_column"] > 0))

    def test_zero_pivot_replaced_by_epsilon(self):
        """s⁴ + s³ + 2s² + 2s + 3 has a zero pivot and two unstable roots."""
        result = routh_array([3, 2, 2, 1, 1])
        self.assertEqual(result["epsilon_substitutions"], 1)
        self.assertEqual(result["sign_changes"], 2)

    def test_zero_row_uses_auxiliary_polynomial(self):
        """(s + 2)(s² + 1): the s¹ row vanishes, roots on the axis are not counted."""
        result = routh_array([2, 1, 2, 1])
        assert_allclose(result["first_column"], [1.0, 2.0, 4.0, 2.0])
        self.assertEqual(result["sign_changes"], 0)

    def test_table_shape(self):
        result = routh_array([1, 2, 3, 4, 5])
        self.assertEqual(result["table"].shape, (5, 3))


# ============================================================================
# Symbolic Routh-Hurwitz
# ============================================================================


class TestSymbolicHurwitz(unittest.TestCase):
    """Test stability ranges of a design parameter."""

    def setUp(self):
        self.K = sp.Symbol("K")

    def test_stable_interval(self):
        result = routh_hurwitz_symbolic([3 + self.K, 2, 2, 5], self.K)
        self.assertEqual(result["stable_set"], sp.Interval.open(-3, sp.Rational(-11, 5)))

    def test_minors(self):
        result = routh_hurwitz_symbolic([3 + self.K, 2, 2, 5], self.K)
        self.assertEqual(sp.simplify(result["minors"][1] - (-5 * self.K - 11)), 0)
        self.assertEqual(len(result["minors"]), 3)

    def test_closed_loop_gain_range(self):
        """s(s + 7.5)(s + 12.5) + K is stable for 0 < K < 1875."""
        result = routh_hurwitz_symbolic([self.K, sp.Rational(375, 4), 20, 1], self.K)
        self.assertEqual(result["stable_set"], sp.Interval.open(0, 1875))

    def test_numeric_negative_coefficient_gives_empty_set(self):
        result = routh_hurwitz_symbolic([1, -1, 1], self.K)
        self.assertEqual(result["stable_set"], sp.S.EmptySet)

    def test_numeric_stable_polynomial_gives_all_reals(self):
        result = routh_hurwitz_symbolic([6, 11, 6, 1], self.K)
        self.assertEqual(result["stable_set"], sp.S.Reals)

    def test_constant_rejected(self):
        with self.assertRaises(MalformedPolynomialError):
            routh_hurwitz_symbolic([self.K], self.K)


# ============================================================================
# Naslin Coefficients
# ============================================================================


class TestNaslin(unittest.TestCase):
    """Test the Naslin damping indicators."""

    def test_tuned_pid_loop(self):
        a = [2.344727, 5.359375, 6.125, 3.5, 1.0]
        result = naslin_coefficients(a)
        assert_allclose(result["alphas"], [2.0, 2.0, 2.0], rtol=1e-5)
        self.assertTrue(result["within_bounds"])
        self.assertEqual(result["bounds"], (1.5, 2.5))

    def test_formula(self):
        """α_1 = a1² / (a0 a2)."""
        result = naslin_coefficients([1, 3, 2])
        assert_allclose(result["alphas"], [4.5])
        self.assertFalse(result["within_bounds"])

    def test_bounds_are_strict(self):
        result = naslin_coefficients([1, 1.5, 1.5])
        assert_allclose(result["alphas"], [1.5])
        self.assertFalse(result["within_bounds"])

    def test_custom_bounds(self):
        result = naslin_coefficients([1, 3, 2], bounds=(4.0, 5.0))
        self.assertTrue(result["within_bounds"])

    def test_invalid_bounds(self):
        with self.assertRaises(ValueError):
            naslin_coefficients([1, 3, 2], bounds=(2.5, 1.5))

    def test_zero_neighbour_raises(self):
        with self.assertRaises(SingularOperationError):
            naslin_coefficients([0, 1, 1])

    def test_degree_too_low(self):
        with self.assertRaises(MalformedPolynomialError):
            naslin_coefficients([1, 1])


# ============================================================================
# Eigenvalue Stability
# ============================================================================


class TestStabilityAnalysis(unittest.TestCase):
    """Test eigenvalue-based stability."""

    def test_stability_continuous_stable(self):
        A = np.array([[0, 1], [-2, -3]])
        result = analyze_stability(A, system_type="continuous")
        self.assertTrue(result["is_stable"])
        self.assertFalse(result["is_marginally_stable"])
        self.assertAlmostEqual(result["max_real_part"], -1.0)

    def test_stability_continuous_unstable(self):
        A = np.array([[1, 0], [0, -1]])
        result = analyze_stability(A, system_type="continuous")
        self.assertTrue(result["is_unstable"])
        self.assertEqual(result["classification"], "unstable")

    def test_stability_continuous_marginally_stable(self):
        A = np.array([[0, 1], [-1, 0]])
        result = analyze_stability(A, system_type="continuous")
        self.assertTrue(result["is_marginally_stable"])
        assert_allclose(result["magnitudes"], [1.0, 1.0])

    def test_stability_discrete_stable(self):
        A = np.array([[0.9, 0.1], [0.0, 0.8]])
        result = analyze_stability(A, system_type="discrete")
        self.assertTrue(result["is_stable"])
        self.assertAlmostEqual(result["spectral_radius"], 0.9)

    def test_stability_discrete_unstable(self):
        A = np.array([[1.1, 0.0], [0.0, 0.5]])
        self.assertTrue(analyze_stability(A, system_type="discrete")["is_unstable"])

    def test_stability_discrete_marginally_stable(self):
        A = np.array([[1.0, 0.0], [0.0, 0.5]])
        self.assertTrue(analyze_stability(A, system_type="discrete")["is_marginally_stable"])

    def test_invalid_system_type(self):
        with self.assertRaises(ValueError):
            analyze_stability(np.eye(2), system_type="sampled")

    def test_non_square_rejected(self):
        with self.assertRaises(ValueError):
            analyze_stability(np.ones((2, 3)))

    def test_empty_state_matrix(self):
        for system_type in ("continuous", "discrete"):
            with self.subTest(system_type=system_type):
                result = analyze_stability(np.zeros((0, 0)), system_type=system_type)
                self.assertTrue(result["is_stable"])
                self.assertEqual(result["eigenvalues"].size, 0)


# ============================================================================
# Agreement Between Criteria
# ============================================================================


class TestCriteriaAgreement(unittest.TestCase):
    """Routh-Hurwitz and eigenvalues of the companion matrix agree."""

    def test_classifications_agree(self):
        polynomials = [
            [6, 11, 6, 1],
            [3, 2, 2, 5],
            [1, 1, 1, 1],
            [8, 2, 1, 1],
            [2.344727, 5.359375, 6.125, 3.5, 1.0],
            [1875.0 * 0.5, 93.75, 20, 1],
            [1, 2, 3, 4, 5],
            [25, 0, 6, 0, 1],
            [4, 0, 5, 0, 1],
        ]
        for ascending in polynomials:
            with self.subTest(coefficients=ascending):
                model = StateSpaceModel.from_transfer_function(TransferFunction([1], ascending[::-1]))
                eigen = analyze_stability(model.A, tolerance=1e-8)
                routh = routh_hurwitz(ascending)
                self.assertEqual(eigen["classification"], routh["classification"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
