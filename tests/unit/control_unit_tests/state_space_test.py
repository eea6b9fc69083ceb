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
Unit Tests for State-Space Models

Tests cover:
- Companion-form realization of transfer functions
- Feedthrough of biproper systems
- Round trip transfer function → state space → transfer function
- Eigenvalues and stability of realizations
- Controllability and observability rank tests
- Ackermann pole placement and observer design
- Error handling

Test Structure:
- StateSpaceTestCase: shared matrices
- TestRealization
- TestConversionRoundTrip
- TestControllability
- TestObservability
- TestAckermann
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from ctrlcourse.control.exceptions import MalformedPolynomialError, SingularOperationError
from ctrlcourse.control.state_space import (
    StateSpaceModel,
    analyze_controllability,
    analyze_observability,
    design_observer_ackermann,
    place_poles_ackermann,
    ss2tf,
    tf2ss,
)
from ctrlcourse.control.transfer_function import TransferFunction

# ============================================================================
# Test Fixtures
# ============================================================================


class StateSpaceTestCase(unittest.TestCase):
    """Base class with common systems."""

    def setUp(self):
        self.A_stable = np.array([[0.0, 1.0], [-2.0, -3.0]])
        self.B_stable = np.array([[0.0], [1.0]])
        self.C_stable = np.array([[1.0, 0.0]])

        self.A_double_int = np.array([[0.0, 1.0], [0.0, 0.0]])
        self.B_double_int = np.array([[0.0], [1.0]])
        self.C_double_int = np.array([[1.0, 0.0]])

        self.rtol = 1e-8
        self.atol = 1e-10


# ============================================================================
# Realization
# ============================================================================


class TestRealization(StateSpaceTestCase):
    """Test the controllable companion form."""

    def test_second_order(self):
        sys = StateSpaceModel.from_transfer_function(TransferFunction([1], [1, 3, 2]))
        assert_array_equal(sys.A, self.A_stable)
        assert_array_equal(sys.B, self.B_stable)
        assert_array_equal(sys.C, self.C_stable)
        assert_array_equal(sys.D, [[0.0]])

    def test_numerator_in_output_matrix(self):
        """C = [b0 b1 ... b_{n-1}]."""
        sys = tf2ss(TransferFunction([2, 5], [1, 4, 5, 2]))
        assert_array_equal(sys.C, [[5.0, 2.0, 0.0]])
        assert_array_equal(sys.A[-1], [-2.0, -5.0, -4.0])

    def test_non_monic_denominator(self):
        sys = tf2ss(TransferFunction([2], [2, 6, 4]))
        assert_allclose(sys.A, self.A_stable)
        assert_allclose(sys.C, self.C_stable)

    def test_biproper_feedthrough(self):
        """(s + 1)/(s + 2) = 1 - 1/(s + 2)."""
        sys = tf2ss(TransferFunction([1, 1], [1, 2]))
        assert_array_equal(sys.A, [[-2.0]])
        assert_array_equal(sys.C, [[-1.0]])
        assert_array_equal(sys.D, [[1.0]])

    def test_static_gain(self):
        sys = tf2ss(TransferFunction([3], [2]))
        self.assertEqual(sys.n_states, 0)
        assert_array_equal(sys.D, [[1.5]])

    def test_discrete_realization_keeps_dt(self):
        sys = tf2ss(TransferFunction([0.5], [1, -0.5], dt=0.1))
        self.assertEqual(sys.dt, 0.1)
        self.assertEqual(sys.system_type, "discrete")

    def test_delay_rejected(self):
        with self.assertRaises(ValueError):
            tf2ss(TransferFunction([1], [1, 1], delay=0.5))

    def test_improper_rejected(self):
        with self.assertRaises(MalformedPolynomialError):
            tf2ss(TransferFunction([1, 0, 0], [1, 1]))

    def test_eigenvalues_are_poles(self):
        G = TransferFunction([1, 2], [1, 6, 11, 6])
        sys = tf2ss(G)
        assert_allclose(np.sort(sys.eigenvalues()), np.sort(G.poles()), rtol=self.rtol)

    def test_characteristic_polynomial(self):
        sys = StateSpaceModel(self.A_stable, self.B_stable, self.C_stable)
        assert_allclose(sys.characteristic_polynomial(), [1.0, 3.0, 2.0])

    def test_stability(self):
        sys = StateSpaceModel(self.A_stable, self.B_stable, self.C_stable)
        self.assertTrue(sys.stability()["is_stable"])
        sys_d = StateSpaceModel([[1.2]], [[1.0]], [[1.0]], dt=0.1)
        self.assertTrue(sys_d.stability()["is_unstable"])

    def test_static_gain_stability(self):
        """A realization without states has no modes and is stable."""
        for dt in (None, 0.1):
            with self.subTest(dt=dt):
                sys = tf2ss(TransferFunction([2], [1], dt=dt))
                info = sys.stability()
                self.assertEqual(info["classification"], "stable")
                self.assertEqual(info["eigenvalues"].size, 0)
                self.assertEqual(info["spectral_radius"], 0.0)
                self.assertEqual(info["max_real_part"], -np.inf)

    def test_shape_validation(self):
        with self.assertRaises(ValueError):
            StateSpaceModel(self.A_stable, [[0.0], [1.0], [2.0]], self.C_stable)

    def test_repr(self):
        sys = StateSpaceModel(self.A_stable, self.B_stable, self.C_stable)
        self.assertEqual(repr(sys), "StateSpaceModel(n_states=2, system_type='continuous')")


# ============================================================================
# Round Trip
# ============================================================================


class TestConversionRoundTrip(StateSpaceTestCase):
    """Transfer function → state space → transfer function."""

    def test_round_trip_reproduces_polynomials(self):
        systems = [
            TransferFunction([1], [1, 3, 2]),
            TransferFunction([1, 2], [1, 4, 5, 2]),
            TransferFunction([1], [1, 20, 93.75, 0]),
            TransferFunction([3, 1], [1, 2, 5]),
        ]
        for G in systems:
            with self.subTest(G=G):
                back = ss2tf(tf2ss(G))
                assert_allclose(back.den, G.den, rtol=self.rtol, atol=self.atol)
                assert_allclose(back.num, G.num, rtol=self.rtol, atol=self.atol)

    def test_round_trip_biproper(self):
        G = TransferFunction([2, 3, 1], [1, 5, 6])
        back = ss2tf(tf2ss(G))
        assert_allclose(back.num, G.num, rtol=self.rtol)
        assert_allclose(back.den, G.den, rtol=self.rtol)

    def test_to_transfer_function(self):
        sys = StateSpaceModel(self.A_stable, self.B_stable, self.C_stable)
        G = sys.to_transfer_function()
        assert_allclose(G.num, [1.0])
        assert_allclose(G.den, [1.0, 3.0, 2.0])

    def test_frequency_response_preserved(self):
        G = TransferFunction([1, 0.5], [2, 3, 4, 1])
        back = ss2tf(tf2ss(G))
        points = np.array([0.1j, 1.0j, 10.0j])
        assert_allclose(back(points), G(points), rtol=1e-9)


# ============================================================================
# Controllability
# ============================================================================


class TestControllability(StateSpaceTestCase):
    """Test controllability analysis."""

    def test_controllability_full_rank(self):
        result = analyze_controllability(self.A_stable, self.B_stable)
        self.assertTrue(result["is_controllable"])
        self.assertEqual(result["rank"], 2)
        self.assertEqual(result["controllability_matrix"].shape, (2, 2))

    def test_controllability_matrix(self):
        result = analyze_controllability(self.A_double_int, self.B_double_int)
        assert_array_equal(result["controllability_matrix"], [[0.0, 1.0], [1.0, 0.0]])

    def test_controllability_uncontrollable(self):
        A = np.array([[1.0, 0.0], [0.0, 2.0]])
        B = np.array([[1.0], [0.0]])
        result = analyze_controllability(A, B)
        self.assertFalse(result["is_controllable"])
        self.assertEqual(result["rank"], 1)

    def test_companion_form_always_controllable(self):
        sys = tf2ss(TransferFunction([1, 1], [1, 3, 2]))
        self.assertTrue(analyze_controllability(sys.A, sys.B)["is_controllable"])


# ============================================================================
# Observability
# ============================================================================


class TestObservability(StateSpaceTestCase):
    """Test observability analysis."""

    def test_observability_full_rank(self):
        result = analyze_observability(self.A_stable, self.C_stable)
        self.assertTrue(result["is_observable"])
        self.assertEqual(result["rank"], 2)

    def test_observability_unobservable(self):
        A = np.array([[1.0, 0.0], [0.0, 2.0]])
        C = np.array([[1.0, 0.0]])
        result = analyze_observability(A, C)
        self.assertFalse(result["is_observable"])
        self.assertEqual(result["rank"], 1)

    def test_pole_zero_cancellation_loses_observability(self):
        """(s + 1)/((s + 1)(s + 2)) realized without cancelling."""
        sys = tf2ss(TransferFunction([1, 1], [1, 3, 2]))
        self.assertFalse(analyze_observability(sys.A, sys.C)["is_observable"])


# ============================================================================
# Ackermann
# ============================================================================


class TestAckermann(StateSpaceTestCase):
    """Test state feedback and observer design."""

    def test_place_poles(self):
        result = place_poles_ackermann(self.A_stable, self.B_stable, [-5, -6])
        assert_allclose(result["gain"], [[28.0, 8.0]], rtol=self.rtol)
        assert_allclose(np.sort(result["achieved_poles"]), [-6.0, -5.0], rtol=self.rtol)
        self.assertTrue(result["is_controllable"])

    def test_place_complex_poles(self):
        poles = [-2 + 1j, -2 - 1j]
        result = place_poles_ackermann(self.A_double_int, self.B_double_int, poles)
        assert_allclose(result["gain"], [[5.0, 4.0]], rtol=self.rtol)
        closed = self.A_double_int - self.B_double_int @ result["gain"]
        assert_allclose(np.sort_complex(np.linalg.eigvals(closed)), np.sort_complex(poles), rtol=self.rtol)

    def test_place_poles_uncontrollable(self):
        A = np.array([[1.0, 0.0], [0.0, 2.0]])
        B = np.array([[1.0], [0.0]])
        with self.assertRaises(SingularOperationError):
            place_poles_ackermann(A, B, [-1, -2])

    def test_place_poles_wrong_count(self):
        with self.assertRaises(ValueError):
            place_poles_ackermann(self.A_stable, self.B_stable, [-1])

    def test_observer(self):
        result = design_observer_ackermann(self.A_stable, self.C_stable, [-10, -10])
        assert_allclose(result["gain"], [[17.0], [47.0]], rtol=self.rtol)
        assert_allclose(result["achieved_poles"], [-10.0, -10.0], rtol=1e-6)
        self.assertTrue(result["is_observable"])

    def test_observer_unobservable(self):
        A = np.array([[1.0, 0.0], [0.0, 2.0]])
        C = np.array([[1.0, 0.0]])
        with self.assertRaises(SingularOperationError):
            design_observer_ackermann(A, C, [-1, -2])

    def test_duality(self):
        """Observer gain of (A, C) is the transposed feedback gain of (Aᵀ, Cᵀ)."""
        poles = [-4.0, -7.0]
        L = design_observer_ackermann(self.A_stable, self.C_stable, poles)["gain"]
        K = place_poles_ackermann(self.A_stable.T, self.C_stable.T, poles)["gain"]
        assert_allclose(L, K.T, rtol=self.rtol)


if __name__ == "__main__":
    unittest.main(verbosity=2)
