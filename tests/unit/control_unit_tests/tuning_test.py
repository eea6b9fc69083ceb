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
Unit Tests for Controller Tuning

Tests cover:
- PID controller transfer functions
- Ziegler-Nichols step-response rules
- Ziegler-Nichols ultimate-gain rules
- Ultimate gain and period from the root locus
- Tangent approximation of S-shaped step responses
- End-to-end tuning from a simulated step response
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from ctrlcourse.control.time_response import step_response
from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.control.tuning import (
    fit_tangent_approximation,
    pid_controller,
    ultimate_gain_and_period,
    ziegler_nichols_step,
    ziegler_nichols_ultimate,
)


def third_order_lag_step(t):
    """Analytic step response of 1/(2s + 1)³."""
    return 1.0 - np.exp(-t / 2.0) * (1.0 + t / 2.0 + t**2 / 8.0)


# ============================================================================
# PID Controllers
# ============================================================================


class TestPIDController(unittest.TestCase):
    """Test PID controller construction."""

    def test_pi(self):
        C = pid_controller(4.5, 0.9)
        assert_allclose(C.num, [4.5, 0.9])
        assert_allclose(C.den, [1.0, 0.0])

    def test_pid(self):
        C = pid_controller(1.0, 2.0, 3.0)
        assert_allclose(C.num, [3.0, 1.0, 2.0])
        assert_allclose(C.den, [1.0, 0.0])

    def test_proportional(self):
        C = pid_controller(2.0)
        assert_allclose(C.num, [2.0])
        assert_allclose(C.den, [1.0])

    def test_pd(self):
        C = pid_controller(2.0, kd=0.5)
        assert_allclose(C.num, [0.5, 2.0])
        assert_allclose(C.den, [1.0])

    def test_pure_integrator(self):
        C = pid_controller(0.0, 1.0)
        assert_allclose(C.num, [1.0])
        assert_allclose(C.den, [1.0, 0.0])

    def test_frequency_response(self):
        s = 2.0j
        C = pid_controller(1.5, 0.4, 0.2)
        self.assertAlmostEqual(C(s), 1.5 + 0.4 / s + 0.2 * s)


# ============================================================================
# Ziegler-Nichols
# ============================================================================


class TestZieglerNicholsStep(unittest.TestCase):
    """Test the step-response tuning table."""

    def test_pi(self):
        result = ziegler_nichols_step(1.0, 1.54, 7.7, "PI")
        self.assertAlmostEqual(result["kp"], 4.5)
        self.assertAlmostEqual(result["tn"], 5.082)
        self.assertIsNone(result["tv"])
        self.assertAlmostEqual(result["ki"], 4.5 / 5.082)
        self.assertEqual(result["kd"], 0.0)
        self.assertEqual(result["controller_type"], "PI")

    def test_pid(self):
        result = ziegler_nichols_step(1.0, 1.54, 7.7, "PID")
        self.assertAlmostEqual(result["kp"], 6.0)
        self.assertAlmostEqual(result["tn"], 3.08)
        self.assertAlmostEqual(result["tv"], 0.77)
        self.assertAlmostEqual(result["kd"], 4.62)

    def test_p(self):
        result = ziegler_nichols_step(2.0, 1.0, 4.0, "P")
        self.assertAlmostEqual(result["kp"], 2.0)
        self.assertIsNone(result["tn"])
        self.assertIsNone(result["tv"])
        assert_allclose(result["transfer_function"].num, [2.0])

    def test_default_is_pid(self):
        self.assertEqual(ziegler_nichols_step(1.0, 1.0, 5.0)["controller_type"], "PID")

    def test_case_insensitive(self):
        self.assertEqual(ziegler_nichols_step(1.0, 1.0, 5.0, "pi")["controller_type"], "PI")

    def test_transfer_function(self):
        result = ziegler_nichols_step(1.0, 1.54, 7.7, "PID")
        C = result["transfer_function"]
        assert_allclose(C.num, [result["kd"], result["kp"], result["ki"]])
        assert_allclose(C.den, [1.0, 0.0])

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            ziegler_nichols_step(1.0, 0.0, 7.7)
        with self.assertRaises(ValueError):
            ziegler_nichols_step(1.0, 1.54, -1.0)
        with self.assertRaises(ValueError):
            ziegler_nichols_step(0.0, 1.54, 7.7)
        with self.assertRaises(ValueError):
            ziegler_nichols_step(1.0, 1.54, 7.7, "PD")


class TestZieglerNicholsUltimate(unittest.TestCase):
    """Test the ultimate-gain tuning table."""

    def setUp(self):
        self.ku = 1875.0
        self.tu = 2.0 * np.pi / np.sqrt(93.75)

    def test_p(self):
        result = ziegler_nichols_ultimate(self.ku, self.tu, "P")
        self.assertAlmostEqual(result["kp"], 937.5)
        self.assertIsNone(result["tn"])

    def test_pi(self):
        result = ziegler_nichols_ultimate(self.ku, self.tu, "PI")
        self.assertAlmostEqual(result["kp"], 843.75)
        self.assertAlmostEqual(result["tn"], self.tu / 1.2)

    def test_pid(self):
        result = ziegler_nichols_ultimate(self.ku, self.tu, "PID")
        self.assertAlmostEqual(result["kp"], 1125.0)
        self.assertAlmostEqual(result["tn"], 0.5 * self.tu)
        self.assertAlmostEqual(result["tv"], 0.125 * self.tu)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            ziegler_nichols_ultimate(0.0, self.tu)
        with self.assertRaises(ValueError):
            ziegler_nichols_ultimate(self.ku, -1.0)


class TestUltimateGainAndPeriod(unittest.TestCase):
    """Test the stability limit of a P-controlled loop."""

    def test_third_order_integrating_plant(self):
        ku, tu = ultimate_gain_and_period(TransferFunction([1], [1, 20, 93.75, 0]))
        self.assertAlmostEqual(ku, 1875.0, places=6)
        self.assertAlmostEqual(tu, 2.0 * np.pi / np.sqrt(93.75), places=8)

    def test_third_order_lag(self):
        """1/(2s + 1)³ oscillates at ω = √3/2 with K_u = 8."""
        ku, tu = ultimate_gain_and_period(TransferFunction([1], [8, 12, 6, 1]))
        self.assertAlmostEqual(ku, 8.0, places=6)
        self.assertAlmostEqual(tu, 2.0 * np.pi / (np.sqrt(3.0) / 2.0), places=6)

    def test_never_unstable(self):
        with self.assertRaises(ValueError):
            ultimate_gain_and_period(TransferFunction([1], [1, 3, 2]))


# ============================================================================
# Tangent Approximation
# ============================================================================


class TestTangentApproximation(unittest.TestCase):
    """Test the inflection tangent fit."""

    def setUp(self):
        self.t = np.linspace(0.0, 40.0, 40001)
        self.y = third_order_lag_step(self.t)

    def test_third_order_lag(self):
        """Tangent at t = 4 with slope e^-2 and y(4) = 1 - 5e^-2: T_d = 9 - e², T_g ≈ e²."""
        fit = fit_tangent_approximation(self.t, self.y)
        self.assertAlmostEqual(fit["delay_time"], 9.0 - np.exp(2.0), delta=1e-3)
        self.assertAlmostEqual(fit["rise_time"], np.exp(2.0), delta=0.01)
        self.assertAlmostEqual(fit["inflection_time"], 4.0, delta=0.01)
        self.assertAlmostEqual(fit["slope"], np.exp(-2.0), places=6)
        self.assertAlmostEqual(fit["gain"], 1.0, places=5)

    def test_fitted_model(self):
        fit = fit_tangent_approximation(self.t, self.y)
        G = fit["transfer_function"]
        self.assertAlmostEqual(G.delay, fit["delay_time"])
        assert_allclose(G.den, [fit["rise_time"], 1.0])
        assert_allclose(G.num, [fit["gain"]])

    def test_amplitude(self):
        fit = fit_tangent_approximation(self.t, 2.0 * self.y, amplitude=4.0)
        self.assertAlmostEqual(fit["gain"], 0.5, places=5)
        self.assertAlmostEqual(fit["rise_time"], np.exp(2.0), delta=0.01)

    def test_falling_response(self):
        fit = fit_tangent_approximation(self.t, -self.y)
        self.assertAlmostEqual(fit["gain"], -1.0, places=5)
        self.assertAlmostEqual(fit["delay_time"], 1.6109, delta=0.01)
        self.assertAlmostEqual(fit["rise_time"], np.exp(2.0), delta=0.01)

    def test_first_order_has_no_delay(self):
        t = np.linspace(0.0, 20.0, 20001)
        fit = fit_tangent_approximation(t, 1.0 - np.exp(-t))
        self.assertEqual(fit["delay_time"], 0.0)
        self.assertAlmostEqual(fit["rise_time"], 1.0, delta=0.01)

    def test_offset_initial_value(self):
        fit = fit_tangent_approximation(self.t, 3.0 + self.y)
        self.assertAlmostEqual(fit["delay_time"], 1.6109, delta=0.01)
        self.assertAlmostEqual(fit["gain"], 1.0, places=5)

    def test_simulated_step_response(self):
        G = TransferFunction([1], [8, 12, 6, 1])
        response = step_response(G, config={"t_final": 40.0, "num_points": 4001})
        fit = fit_tangent_approximation(response["time"], response["output"])
        self.assertAlmostEqual(fit["delay_time"], 1.61, delta=0.02)
        self.assertAlmostEqual(fit["rise_time"], 7.39, delta=0.02)

        tuning = ziegler_nichols_step(fit["gain"], fit["delay_time"], fit["rise_time"], "PI")
        self.assertAlmostEqual(tuning["kp"], 0.9 * 7.389 / 1.611, delta=0.05)

    def test_invalid_inputs(self):
        with self.assertRaises(ValueError):
            fit_tangent_approximation(self.t, self.y[:-1])
        with self.assertRaises(ValueError):
            fit_tangent_approximation([0.0, 1.0], [0.0, 1.0])
        with self.assertRaises(ValueError):
            fit_tangent_approximation([0.0, 2.0, 1.0], [0.0, 0.5, 1.0])
        with self.assertRaises(ValueError):
            fit_tangent_approximation(self.t, self.y, amplitude=0.0)
        with self.assertRaises(ValueError):
            fit_tangent_approximation(self.t, np.ones_like(self.t))
        with self.assertRaises(ValueError):
            fit_tangent_approximation(np.ones((3, 2)), np.ones((3, 2)))


if __name__ == "__main__":
    unittest.main(verbosity=2)
