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
Unit Tests for Root Locus

Tests cover:
- Root locus trace (branch ordering, default gain sweep, degree drop)
- Asymptotes
- Breakaway points
- Imaginary-axis crossings
- Gain at a point
- Error handling
"""

import unittest
import warnings

import numpy as np
from numpy.testing import assert_allclose

from ctrlcourse.control.exceptions import SingularOperationError
from ctrlcourse.control.root_locus import (
    asymptotes,
    breakaway_points,
    gain_at_point,
    imaginary_axis_crossings,
    root_locus,
)
from ctrlcourse.control.transfer_function import TransferFunction


class RootLocusTestCase(unittest.TestCase):
    """Base class with the open loops used throughout."""

    def setUp(self):
        # 1/(s (s + 7.5)(s + 12.5))
        self.G = TransferFunction([1], [1, 20, 93.75, 0])
        # (s + 1)/(s (s + 2)(s + 3))
        self.G_zero = TransferFunction([1, 1], [1, 5, 6, 0])


# ============================================================================
# Root Locus Trace
# ============================================================================


class TestRootLocus(RootLocusTestCase):
    """Test the root locus trace."""

    def test_zero_gain_gives_open_loop_poles(self):
        result = root_locus(self.G, gains=[0.0])
        assert_allclose(np.sort(result["roots"][0].real), [-12.5, -7.5, 0.0], atol=1e-10)
        assert_allclose(np.abs(result["roots"][0].imag), 0.0, atol=1e-10)

    def test_critical_gain(self):
        result = root_locus(self.G, gains=[0.0, 1875.0])
        roots = np.sort_complex(result["roots"][1])
        assert_allclose(roots, [-20.0, -9.682458365518542j, 9.682458365518542j], atol=1e-8)

    def test_result_structure(self):
        result = root_locus(self.G, gains=[0.0, 10.0, 100.0])
        self.assertEqual(result["roots"].shape, (3, 3))
        assert_allclose(result["gains"], [0.0, 10.0, 100.0])
        assert_allclose(np.sort(result["open_loop_poles"].real), [-12.5, -7.5, 0.0], atol=1e-10)
        self.assertEqual(result["open_loop_zeros"].size, 0)

    def test_default_sweep(self):
        result = root_locus(self.G)
        self.assertEqual(result["gains"].size, 400)
        self.assertEqual(result["gains"][0], 0.0)
        self.assertTrue(np.all(np.diff(result["gains"]) > 0))
        self.assertEqual(result["roots"].shape, (400, 3))

    def test_custom_sweep_size(self):
        self.assertEqual(root_locus(self.G, num_gains=50)["gains"].size, 50)

    def test_branches_are_continuous(self):
        """Consecutive rows are matched, so each column moves only a little."""
        gains = np.linspace(0.0, 50.0, 501)
        roots = root_locus(self.G, gains=gains)["roots"]
        steps = np.abs(np.diff(roots, axis=0))
        # Near the breakaway point the roots move as sqrt(K), so allow some slack
        self.assertLess(np.max(steps), 1.0)

    def test_branches_end_at_zeros_or_infinity(self):
        result = root_locus(self.G_zero, gains=[0.0, 1e6])
        final = result["roots"][1]
        # One branch approaches the zero at -1
        self.assertLess(np.min(np.abs(final + 1.0)), 1e-3)

    def test_closed_loop_poles_satisfy_characteristic_equation(self):
        gain = 42.0
        roots = root_locus(self.G_zero, gains=[gain])["roots"][0]
        for r in roots:
            residual = np.polyval(self.G_zero.den, r) + gain * np.polyval(self.G_zero.num, r)
            self.assertLess(abs(residual), 1e-8)

    def test_degree_drop_warns(self):
        """-s/(s + 1) at K = 1 has characteristic polynomial 1."""
        G = TransferFunction([-1, 0], [1, 1])
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = root_locus(G, gains=[0.0, 1.0])
        self.assertTrue(any(issubclass(w.category, RuntimeWarning) for w in caught))
        self.assertTrue(np.isnan(result["roots"][1, 0]))

    def test_invalid_gains(self):
        with self.assertRaises(ValueError):
            root_locus(self.G, gains=[])


# ============================================================================
# Asymptotes
# ============================================================================


class TestAsymptotes(RootLocusTestCase):
    """Test asymptote center and angles."""

    def test_three_poles(self):
        info = asymptotes(self.G)
        self.assertAlmostEqual(info["center"], -20.0 / 3.0)
        assert_allclose(info["angles_deg"], [60.0, 180.0, 300.0])
        self.assertEqual(info["count"], 3)

    def test_with_zero(self):
        info = asymptotes(self.G_zero)
        self.assertAlmostEqual(info["center"], -2.0)
        assert_allclose(info["angles_deg"], [90.0, 270.0])
        self.assertEqual(info["count"], 2)

    def test_biproper_has_no_asymptotes(self):
        info = asymptotes(TransferFunction([1, 3], [1, 1]))
        self.assertIsNone(info["center"])
        self.assertEqual(info["count"], 0)
        self.assertEqual(info["angles_deg"].size, 0)

    def test_non_monic_coefficients(self):
        """Scaling numerator and denominator leaves the asymptotes unchanged."""
        scaled = TransferFunction([4], [2, 40, 187.5, 0])
        self.assertAlmostEqual(asymptotes(scaled)["center"], -20.0 / 3.0)


# ============================================================================
# Breakaway Points
# ============================================================================


class TestBreakawayPoints(RootLocusTestCase):
    """Test breakaway point detection."""

    def test_single_feasible_point(self):
        points = breakaway_points(self.G)
        self.assertEqual(len(points), 1)
        self.assertAlmostEqual(points[0]["point"], (-40.0 + np.sqrt(475.0)) / 6.0, places=8)
        self.assertAlmostEqual(points[0]["gain"], 128.26, places=1)

    def test_gain_matches_gain_at_point(self):
        point = breakaway_points(self.G)[0]
        self.assertAlmostEqual(gain_at_point(self.G, point["point"]), point["gain"], places=8)

    def test_second_order(self):
        """1/(s (s + 2)) breaks away at -1 with K = 1."""
        points = breakaway_points(TransferFunction([1], [1, 2, 0]))
        self.assertEqual(len(points), 1)
        self.assertAlmostEqual(points[0]["point"], -1.0)
        self.assertAlmostEqual(points[0]["gain"], 1.0)

    def test_first_order_has_none(self):
        self.assertEqual(breakaway_points(TransferFunction([1], [1, 1])), [])


# ============================================================================
# Imaginary-Axis Crossings
# ============================================================================


class TestImaginaryAxisCrossings(RootLocusTestCase):
    """Test stability limit detection."""

    def test_critical_gain(self):
        crossings = imaginary_axis_crossings(self.G)
        self.assertEqual(len(crossings), 1)
        self.assertAlmostEqual(crossings[0]["frequency"] ** 2, 93.75, places=8)
        self.assertAlmostEqual(crossings[0]["gain"], 1875.0, places=6)

    def test_matches_closed_loop_poles(self):
        crossing = imaginary_axis_crossings(self.G)[0]
        roots = root_locus(self.G, gains=[crossing["gain"]])["roots"][0]
        self.assertLess(np.min(np.abs(roots - 1j * crossing["frequency"])), 1e-6)

    def test_no_crossing(self):
        """Second-order loop with negative real poles stays in the LHP."""
        self.assertEqual(imaginary_axis_crossings(TransferFunction([1], [1, 3, 2])), [])

    def test_discrete_rejected(self):
        with self.assertRaises(ValueError):
            imaginary_axis_crossings(TransferFunction([1], [1, -0.5], dt=0.1))


# ============================================================================
# Gain at a Point
# ============================================================================


class TestGainAtPoint(RootLocusTestCase):
    """Test K = -D(s)/N(s)."""

    def test_real_point(self):
        self.assertAlmostEqual(gain_at_point(self.G, -20.0), 1875.0)

    def test_complex_point(self):
        self.assertAlmostEqual(gain_at_point(self.G, 1j * np.sqrt(93.75)), 1875.0, places=6)

    def test_open_loop_pole(self):
        self.assertEqual(gain_at_point(self.G, 0.0), 0.0)

    def test_point_off_locus(self):
        with self.assertRaises(ValueError):
            gain_at_point(self.G, 1.0)
        with self.assertRaises(ValueError):
            gain_at_point(self.G, -5.0 + 5.0j)

    def test_open_loop_zero(self):
        with self.assertRaises(SingularOperationError):
            gain_at_point(TransferFunction([1, 2], [1, 3, 2]), -2.0)


# ============================================================================
# Error Handling
# ============================================================================


class TestErrorHandling(RootLocusTestCase):
    """Test invalid open loops."""

    def test_delay_rejected(self):
        G = TransferFunction([1], [1, 1], delay=0.5)
        for func in (root_locus, asymptotes, breakaway_points, imaginary_axis_crossings):
            with self.subTest(func=func.__name__):
                with self.assertRaises(ValueError):
                    func(G)

    def test_zero_open_loop_rejected(self):
        with self.assertRaises(ValueError):
            root_locus(TransferFunction([0], [1, 1]))


if __name__ == "__main__":
    unittest.main(verbosity=2)
