"""
Rayleigh scattering of the correction layer.

The TOSA model treats the atmosphere between the actual surface pressure and
the standard pressure as a thin "correction layer". This module provides the
Rayleigh quantities of that layer:

- Barometric reduction of the surface pressure to the pixel altitude
- Relative air mass of the correction layer
- Rayleigh optical thickness from an inverse power polynomial
- Rayleigh phase function with depolarization
- Diffuse Rayleigh transmittance and single scattering path radiance

References
----------
.. [1] Hansen, J.E. and Travis, L.D. (1974). Light scattering in planetary
       atmospheres. Space Science Reviews, 16:527-610.
.. [2] Doerffer, R. (2008). Algorithm Theoretical Basis Document (ATBD)
       for the MERIS Case 2 water algorithm. GKSS Research Center.
"""

import numpy as np
from typing import Union

from correct_watertype.constants import (
    BAROMETRIC_EXPONENT,
    LAPSE_RATE,
    MIN_ALTITUDE,
    RAYLEIGH_DEPOLARIZATION,
    RAYLEIGH_TAU_COEFFICIENTS,
    STANDARD_PRESSURE,
    STANDARD_TEMPERATURE,
)


def altitude_pressure(
    pressure: Union[float, np.ndarray],
    altitude: Union[float, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Reduce a surface pressure to the given altitude.

    Parameters
    ----------
    pressure : float or array_like
        Surface pressure in hPa.
    altitude : float or array_like
        Altitude in metres. Values below 1 m are treated as 1 m.

    Returns
    -------
    float or ndarray
        Pressure at altitude in hPa.

    Notes
    -----
    Barometric formula for a constant lapse rate:

    .. math::

        p(h) = p_0 \\left(1 - \\frac{0.0065 h}{288.15}\\right)^{5.255}
    """
    h = np.maximum(np.asarray(altitude, dtype=np.float64), MIN_ALTITUDE)
    return pressure * np.power(1.0 - LAPSE_RATE * h / STANDARD_TEMPERATURE, BAROMETRIC_EXPONENT)


def correction_layer_mass(
    pressure: Union[float, np.ndarray],
    altitude: Union[float, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Relative air mass of the correction layer.

    Positive if the pixel pressure exceeds the standard pressure of
    1013.2 hPa, negative otherwise.
    """
    p = altitude_pressure(pressure, altitude)
    return (p - STANDARD_PRESSURE) / STANDARD_PRESSURE


def rayleigh_optical_thickness(
    wavelength: Union[float, np.ndarray],
    air_mass: Union[float, np.ndarray] = 1.0,
) -> Union[float, np.ndarray]:
    """
    Rayleigh optical thickness of an air layer.

    Parameters
    ----------
    wavelength : float or array_like
        Wavelength in nanometers.
    air_mass : float or array_like, optional
        Relative air mass of the layer (1.0 for the standard atmosphere).

    Returns
    -------
    float or ndarray
        Rayleigh optical thickness (dimensionless).

    Notes
    -----
    .. math::

        \\tau_R = m \\left(0.008524 \\lambda^{-4} + 9.63 \\cdot 10^{-5}
        \\lambda^{-6} + 1.1 \\cdot 10^{-6} \\lambda^{-8}\\right)

    with :math:`\\lambda` in micrometers.

    Examples
    --------
    >>> tau = rayleigh_optical_thickness(np.array([412.3, 442.3, 489.7]))
    """
    lam = np.asarray(wavelength, dtype=np.float64) / 1000.0  # nm to micrometers
    c4, c6, c8 = RAYLEIGH_TAU_COEFFICIENTS
    return air_mass * (c4 * lam**-4.0 + c6 * lam**-6.0 + c8 * lam**-8.0)


def scattering_angle_cosine(
    cos_sun: float,
    sin_sun: float,
    cos_view: float,
    sin_view: float,
    cos_azimuth_difference: float,
) -> float:
    """Cosine of the scattering angle between the solar and viewing directions."""
    return -cos_view * cos_sun - sin_view * sin_sun * cos_azimuth_difference


def rayleigh_phase_function(
    cos_scattering_angle: Union[float, np.ndarray],
    depolarization: float = RAYLEIGH_DEPOLARIZATION,
) -> Union[float, np.ndarray]:
    """
    Rayleigh phase function including molecular anisotropy.

    Notes
    -----
    With :math:`\\gamma = \\delta / (2 - \\delta)`:

    .. math::

        P(\\Theta) = \\frac{3}{4 (1 + 2\\gamma)}
        \\left[(1 - \\gamma)\\cos^2\\Theta + 1 + 3\\gamma\\right]

    For :math:`\\delta = 0` this is the classical :math:`3/4 (1 + \\cos^2\\Theta)`.
    """
    gam = depolarization / (2.0 - depolarization)
    c = np.asarray(cos_scattering_angle, dtype=np.float64)
    return 3.0 / (4.0 * (1.0 + 2.0 * gam)) * ((1.0 - gam) * c * c + (1.0 + 3.0 * gam))


def rayleigh_transmittance(
    tau_rayleigh: Union[float, np.ndarray],
    cos_zenith: float,
) -> Union[float, np.ndarray]:
    """
    Diffuse Rayleigh transmittance, exp(-tau / 2 / cos(theta)).

    Half of the scattered light is assumed to continue in the forward
    direction.
    """
    return np.exp(-0.5 * np.asarray(tau_rayleigh) / cos_zenith)


def rayleigh_path_radiance(
    solar_flux: np.ndarray,
    ozone_transmittance_down: np.ndarray,
    tau_rayleigh: np.ndarray,
    phase: float,
    cos_view: float,
) -> np.ndarray:
    """
    Single scattering Rayleigh path radiance of the correction layer.

    .. math::

        L_{rc} = F_0 \\, t_{O_3}^{\\downarrow} \\, \\tau_R \\,
        \\frac{P(\\Theta)}{4 \\pi \\cos\\theta_v}
    """
    return solar_flux * ozone_transmittance_down * tau_rayleigh * phase / (4.0 * np.pi * cos_view)
