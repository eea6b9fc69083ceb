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
Frequency Response

Bode and Nyquist data, gain/phase margins and the Nyquist criterion.

Continuous systems are evaluated on s = jω, discrete systems on the unit
circle z = exp(jωT) for 0 < ω <= π/T.

Phase convention:
    The raw phase atan2(Im, Re) is unwrapped along the grid and then
    shifted by a multiple of 360° so that the first sample matches the
    sum of the factor angles

        ∠G = Σ ∠(jω - z_i) - Σ ∠(jω - p_i) + ∠k - ω T_t

    Hence 1/s³ starts at -270°, not at +90°.

Margins:
    Gain margin GM = -20 log10 |G(jω_pc)| where ∠G(jω_pc) = -180° (mod 360°)
    Phase margin PM = ∠G(jω_gc) + 180° where |G(jω_gc)| = 1,
    wrapped to (-180°, 180°]

Usage
-----
>>> G = TransferFunction([1, 20, 100], [1, 3, 3, 1])
>>> bode(G, omega=[5.0])['phase_deg']
array([-182.94...])
>>> stability_margins(G)['phase_margin'] < 0
True
"""

import warnings
from typing import Optional

import numpy as np
from scipy.optimize import brentq

from ctrlcourse.control.transfer_function import TransferFunction
from ctrlcourse.types.control_classical import BodeResult, NyquistResult, StabilityMargins
from ctrlcourse.types.core import ArrayLike, ComplexResponse, FrequencyArray
from ctrlcourse.types.options import (
    DEFAULT_NUM_FREQUENCIES,
    VALID_GRID_SPACINGS,
    FrequencyGridConfig,
)

# ============================================================================
# Frequency Grids
# ============================================================================


def _corner_frequencies(system: TransferFunction) -> np.ndarray:
    roots = np.concatenate([np.atleast_1d(system.poles()), np.atleast_1d(system.zeros())])
    corners = np.abs(roots)
    if system.delay:
        corners = np.append(corners, 1.0 / system.delay)
    return corners[corners > 1e-12]


def frequency_grid(
    config: Optional[FrequencyGridConfig] = None,
    system: Optional[TransferFunction] = None,
) -> FrequencyArray:
    """
    Build an angular frequency grid.

    Missing config entries are filled in from the system: two decades
    beyond the smallest and largest corner frequency (|pole|, |zero|,
    1/delay) for continuous systems, up to the Nyquist frequency π/T for
    discrete ones. Without a system the range is 10^-2 .. 10^2 rad/s.

    Parameters
    ----------
    config : Optional[FrequencyGridConfig]
        omega_min, omega_max, num_points, spacing ('log' or 'linear')
    system : Optional[TransferFunction]
        System used to choose a default range

    Returns
    -------
    FrequencyArray
        Strictly increasing positive frequencies [rad/s]

    Examples
    --------
    >>> frequency_grid({'omega_min': 0.1, 'omega_max': 10.0, 'num_points': 3})
    array([ 0.1,  1. , 10. ])
    """
    config = dict(config or {})
    spacing = config.get("spacing", "log")
    if spacing not in VALID_GRID_SPACINGS:
        raise ValueError(f"Invalid spacing '{spacing}'. Choose from: {VALID_GRID_SPACINGS}")
    num_points = int(config.get("num_points", DEFAULT_NUM_FREQUENCIES))
    if num_points < 2:
        raise ValueError(f"num_points must be at least 2, got {num_points}")

    low, high = 1e-2, 1e2
    if system is not None and system.is_discrete:
        high = np.pi / system.dt
        low = high * 1e-4
    elif system is not None:
        corners = _corner_frequencies(system)
        if corners.size:
            low = np.min(corners) / 100.0
            high = np.max(corners) * 100.0

    omega_min = float(config.get("omega_min", low))
    omega_max = float(config.get("omega_max", high))
    if not 0.0 < omega_min < omega_max:
        raise ValueError(
            f"Frequency range must satisfy 0 < omega_min < omega_max, got ({omega_min}, {omega_max})",
        )

    if spacing == "log":
        return np.logspace(np.log10(omega_min), np.log10(omega_max), num_points)
    return np.linspace(omega_min, omega_max, num_points)


# ============================================================================
# Frequency Response
# ============================================================================


def _evaluation_points(system: TransferFunction, omega: np.ndarray) -> np.ndarray:
    if system.is_discrete:
        return np.exp(1j * omega * system.dt)
    return 1j * omega


def frequency_response(system: TransferFunction, omega: ArrayLike) -> ComplexResponse:
    """
    Complex response G(jω) (or G(e^{jωT}) for discrete systems).

    Raises
    ------
    PoleEvaluationError
        If a grid point coincides with a pole on the imaginary axis
        (unit circle)
    """
    omega = np.atleast_1d(np.asarray(omega, dtype=float))
    return np.atleast_1d(system.evaluate(_evaluation_points(system, omega)))


def _reference_phase(system: TransferFunction, omega0: float) -> float:
    """Factor-sum phase at a single frequency [rad]."""
    point = _evaluation_points(system, np.array([omega0]))[0]
    zeros = np.atleast_1d(system.zeros())
    poles = np.atleast_1d(system.poles())
    lead = system.num[0] / system.den[0]
    phase = np.sum(np.angle(point - zeros)) - np.sum(np.angle(point - poles)) + np.angle(lead)
    return float(phase - omega0 * system.delay)


def _unwrapped_phase(system: TransferFunction, omega: np.ndarray, response: np.ndarray) -> np.ndarray:
    phase = np.unwrap(np.angle(response))
    reference = _reference_phase(system, omega[0])
    turns = np.round((reference - phase[0]) / (2.0 * np.pi))
    return phase + 2.0 * np.pi * turns


def bode(
    system: TransferFunction,
    omega: Optional[ArrayLike] = None,
    config: Optional[FrequencyGridConfig] = None,
) -> BodeResult:
    """
    Bode diagram data.

    Parameters
    ----------
    system : TransferFunction
        System to evaluate (continuous or discrete, delay allowed)
    omega : Optional[ArrayLike]
        Frequencies [rad/s]; generated with frequency_grid if None
    config : Optional[FrequencyGridConfig]
        Grid configuration used when omega is None

    Returns
    -------
    BodeResult
        Magnitude (linear and dB) and unwrapped phase (deg and rad)

    Examples
    --------
    >>> result = bode(TransferFunction([1], [1, 0, 0, 0]), omega=[1.0])
    >>> result['magnitude_db'], result['phase_deg']
    (array([0.]), array([-270.]))
    """
    if omega is None:
        omega = frequency_grid(config, system)
    omega = np.atleast_1d(np.asarray(omega, dtype=float))

    response = frequency_response(system, omega)
    magnitude = np.abs(response)
    with np.errstate(divide="ignore"):
        magnitude_db = 20.0 * np.log10(magnitude)
    phase_rad = _unwrapped_phase(system, omega, response)

    result: BodeResult = {
        "omega": omega,
        "response": response,
        "magnitude": magnitude,
        "magnitude_db": magnitude_db,
        "phase_deg": np.degrees(phase_rad),
        "phase_rad": phase_rad,
    }
    return result


def nyquist(
    system: TransferFunction,
    omega: Optional[ArrayLike] = None,
    config: Optional[FrequencyGridConfig] = None,
) -> NyquistResult:
    """
    Nyquist curve G(jω) for ω > 0.

    The ω < 0 half is the complex conjugate mirror image.
    """
    if omega is None:
        omega = frequency_grid(config, system)
    omega = np.atleast_1d(np.asarray(omega, dtype=float))
    response = frequency_response(system, omega)

    result: NyquistResult = {
        "omega": omega,
        "response": response,
        "real": np.real(response),
        "imag": np.imag(response),
    }
    return result


# ============================================================================
# Stability Margins
# ============================================================================


def _wrap_degrees(angle: float) -> float:
    """Map to (-180, 180]."""
    wrapped = (angle + 180.0) % 360.0 - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


def stability_margins(
    system: TransferFunction,
    omega: Optional[ArrayLike] = None,
) -> StabilityMargins:
    """
    Gain and phase margins of an open loop.

    Crossovers are located on a dense grid and refined with
    scipy.optimize.brentq:
    - phase crossover: Im G = 0 with Re G < 0
    - gain crossover: 20 log10 |G| = 0

    When several crossovers exist, the smallest (worst-case) margin is
    reported.

    Parameters
    ----------
    system : TransferFunction
        Open loop G (continuous or discrete)
    omega : Optional[ArrayLike]
        Search grid; default frequency_grid(system=system) with
        10·DEFAULT_NUM_FREQUENCIES points

    Returns
    -------
    StabilityMargins
        Margins (inf when there is no crossover) and crossover
        frequencies (NaN when there is none)

    Warns
    -----
    UserWarning
        If the grid contains no gain crossover or no phase crossover

    Examples
    --------
    >>> margins = stability_margins(TransferFunction([1, 20, 100], [1, 3, 3, 1]))
    >>> round(margins['gain_crossover_frequency'], 2), round(margins['phase_margin'], 1)
    (4.88, -3.2)
    """
    if omega is None:
        omega = frequency_grid({"num_points": 10 * DEFAULT_NUM_FREQUENCIES}, system)
    omega = np.atleast_1d(np.asarray(omega, dtype=float))

    response = frequency_response(system, omega)
    phase_deg = np.degrees(_unwrapped_phase(system, omega, response))

    def response_at(w):
        return frequency_response(system, [w])[0]

    def log_magnitude(w):
        return np.log10(np.abs(response_at(w)))

    def imaginary_part(w):
        return np.imag(response_at(w))

    # Gain crossovers
    log_mag = np.log10(np.abs(response))
    phase_margin = np.inf
    gain_crossover = np.nan
    for i in np.flatnonzero(np.sign(log_mag[:-1]) * np.sign(log_mag[1:]) <= 0):
        if log_mag[i] == 0.0:
            w = omega[i]
        elif log_mag[i + 1] == 0.0:
            continue
        else:
            w = brentq(log_magnitude, omega[i], omega[i + 1])
        raw = np.degrees(np.angle(response_at(w)))
        # Stay on the branch of the grid phase
        phase = raw + 360.0 * np.round((phase_deg[i] - raw) / 360.0)
        margin = _wrap_degrees(phase + 180.0)
        if margin < phase_margin:
            phase_margin, gain_crossover = margin, float(w)

    # Phase crossovers (negative real axis)
    imag = np.imag(response)
    gain_margin_db = np.inf
    phase_crossover = np.nan
    for i in np.flatnonzero(np.sign(imag[:-1]) * np.sign(imag[1:]) < 0):
        w = brentq(imaginary_part, omega[i], omega[i + 1])
        value = response_at(w)
        if np.real(value) >= 0:
            continue
        margin_db = -20.0 * np.log10(np.abs(value))
        if margin_db < gain_margin_db:
            gain_margin_db, phase_crossover = margin_db, float(w)

    if np.isnan(gain_crossover):
        warnings.warn(
            "No gain crossover in the frequency range; phase margin is infinite",
            UserWarning,
        )
    if np.isnan(phase_crossover):
        warnings.warn(
            "No phase crossover in the frequency range; gain margin is infinite",
            UserWarning,
        )

    result: StabilityMargins = {
        "gain_margin": float(10.0 ** (gain_margin_db / 20.0)),
        "gain_margin_db": float(gain_margin_db),
        "phase_crossover_frequency": phase_crossover,
        "phase_margin": float(phase_margin),
        "gain_crossover_frequency": gain_crossover,
        "margins_positive": bool(gain_margin_db > 0 and phase_margin > 0),
    }
    return result


# ============================================================================
# Nyquist Criterion
# ============================================================================


def nyquist_encirclements(
    system: TransferFunction,
    omega: Optional[ArrayLike] = None,
    tolerance: float = 1e-9,
) -> int:
    """
    Clockwise encirclements N of the critical point -1 by G(jω), ω ∈ ℝ.

    The contour passes to the right of open-loop poles at the origin; the
    resulting infinite arc contributes -n0·180° to the argument of 1 + G.

    Raises
    ------
    ValueError
        For discrete systems, or open-loop poles on the imaginary axis
        away from the origin

    Examples
    --------
    >>> nyquist_encirclements(TransferFunction([1, 20, 100], [1, 3, 3, 1]))
    2
    """
    if system.is_discrete:
        raise ValueError("nyquist_encirclements supports continuous systems only")

    poles = np.atleast_1d(system.poles())
    on_axis = np.abs(np.real(poles)) <= tolerance
    at_origin = on_axis & (np.abs(poles) <= tolerance)
    if np.any(on_axis & ~at_origin):
        raise ValueError(
            "Open-loop poles on the imaginary axis away from the origin are not supported",
        )

    if omega is None:
        omega = frequency_grid({"num_points": 20 * DEFAULT_NUM_FREQUENCIES}, system)
    omega = np.atleast_1d(np.asarray(omega, dtype=float))

    return_difference = 1.0 + frequency_response(system, omega)
    half_turn = np.unwrap(np.angle(return_difference))
    change = 2.0 * (half_turn[-1] - half_turn[0]) - np.pi * int(at_origin.sum())

    counterclockwise = int(np.round(change / (2.0 * np.pi)))
    return -counterclockwise


def closed_loop_rhp_poles(system: TransferFunction, omega: Optional[ArrayLike] = None) -> int:
    """
    Nyquist criterion Z = N + P for the unity negative feedback loop.

    N: clockwise encirclements of -1; P: open-loop poles with Re(p) > 0.
    """
    poles = np.atleast_1d(system.poles())
    unstable_open_loop = int(np.sum(np.real(poles) > 1e-9))
    return nyquist_encirclements(system, omega) + unstable_open_loop


__all__ = [
    "frequency_grid",
    "frequency_response",
    "bode",
    "nyquist",
    "stability_margins",
    "nyquist_encirclements",
    "closed_loop_rhp_poles",
]
