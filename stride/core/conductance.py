"""Walking-speed model used as edge conductance.

Speed against slope follows a Lorentzian curve fit to pedestrian field
trials, damped by vegetation density and ground roughness:

    lorentzian(s) = c / (pi * b * (1 + ((s - a) / b)^2))
    speed(s, dens, rgh) = lorentzian(s) / (d * dens + e * rgh + 1)

s is the signed slope angle in degrees in the direction of travel (positive
uphill). The curve peaks at s = a, a slight downhill grade. Speed is in
ground units per second.

All functions accept scalars or numpy arrays.
"""

import logging
import warnings
from math import pi

import numpy as np
from numpy.typing import ArrayLike

from stride.constants import SpeedModelConfig
from stride.exceptions import ConductanceDegenerateError

logger = logging.getLogger(__name__)

A = SpeedModelConfig.A
B = SpeedModelConfig.B
C = SpeedModelConfig.C
D = SpeedModelConfig.D
E = SpeedModelConfig.E


def lorentzian(slope_deg: ArrayLike) -> np.ndarray | float:
    """Undamped walking speed at a slope angle.

    Args:
        slope_deg: Signed slope in degrees (positive uphill)

    Returns:
        Speed in ground units per second.
    """
    s = np.asarray(slope_deg, dtype=np.float64)
    result = C / (pi * B * (1 + ((s - A) / B) ** 2))
    return float(result) if result.ndim == 0 else result


def damping(density: ArrayLike, roughness: ArrayLike) -> np.ndarray | float:
    """Divisor applied to the Lorentzian for vegetation and roughness."""
    result = D * np.asarray(density, dtype=np.float64) + E * np.asarray(roughness, dtype=np.float64) + 1
    return float(result) if result.ndim == 0 else result


def speed(slope_deg: ArrayLike, density: ArrayLike, roughness: ArrayLike) -> np.ndarray | float:
    """Predicted walking speed.

    Args:
        slope_deg: Signed slope in degrees in the direction of travel
        density: Normalized relative vegetation density (0-1)
        roughness: Ground-surface roughness (>= 0)

    Returns:
        Speed in ground units per second. May be non-positive for invalid
        (negative) density or roughness; see ``edge_speed``.
    """
    result = np.asarray(lorentzian(slope_deg)) / np.asarray(damping(density, roughness))
    return float(result) if result.ndim == 0 else result


def slope_angle(delta_elevation: ArrayLike, distance: ArrayLike) -> np.ndarray | float:
    """Signed slope angle in degrees for a rise over a horizontal distance."""
    result = np.degrees(np.arctan(np.asarray(delta_elevation, dtype=np.float64) / np.asarray(distance, dtype=np.float64)))
    return float(result) if result.ndim == 0 else result


def edge_speed(
    slope_deg: np.ndarray,
    density_from: np.ndarray,
    density_to: np.ndarray,
    roughness_from: np.ndarray,
    roughness_to: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Speed along directed edges, clamped to be non-negative.

    Density and roughness are averaged over the two endpoints (symmetric);
    slope is directional. Non-positive or non-finite speeds are set to 0 and
    flagged. NaN inputs give NaN speeds, which are left for the caller to
    treat as missing data.

    Args:
        slope_deg: Slope of each edge in the direction of travel
        density_from, density_to: Density at source and target cells
        roughness_from, roughness_to: Roughness at source and target cells

    Returns:
        Tuple (speeds, degenerate) where degenerate flags the clamped edges.
    """
    dens = (density_from + density_to) / 2.0
    rgh = (roughness_from + roughness_to) / 2.0
    with np.errstate(divide="ignore", invalid="ignore"):
        v = np.asarray(speed(slope_deg, dens, rgh), dtype=np.float64)

    valid_input = ~(np.isnan(slope_deg) | np.isnan(dens) | np.isnan(rgh))
    degenerate = valid_input & ~(np.isfinite(v) & (v > 0))
    if degenerate.any():
        v = np.where(degenerate, 0.0, v)

    return v, degenerate


def report_degenerate(n_degenerate: int, n_edges: int) -> None:
    """Log and warn about edges whose speed was clamped to zero."""
    if n_degenerate == 0:
        return
    message = (
        f"{n_degenerate} of {n_edges} edges have non-positive speed outside barriers "
        f"(check density/roughness for negative values); treated as impassable"
    )
    logger.warning(message)
    warnings.warn(message, ConductanceDegenerateError, stacklevel=3)
