"""
Validation of TOA reflectances.

Before the atmospheric correction every pixel is tested for land, cloud or
ice and out-of-range TOA reflectances. The result is a small bit field that
is stored as :attr:`PixelSample.validation`.
"""

from typing import Optional

import numpy as np

from correct_watertype.config import ValidationConfig
from correct_watertype.constants import (
    VALIDATION_CLOUD_ICE,
    VALIDATION_LAND,
    VALIDATION_TOA_OUT_OF_RANGE,
)


def toa_reflectance(radiance, solar_flux, solar_zenith):
    """
    TOA radiance reflectance.

    Parameters
    ----------
    radiance : float or array_like
        TOA radiance.
    solar_flux : float or array_like
        Extraterrestrial solar flux, same units as ``radiance`` times sr.
    solar_zenith : float or array_like
        Solar zenith angle [deg].

    Returns
    -------
    float or ndarray
        :math:`L / (F_0 \\cos\\theta_s)`.
    """
    return np.asarray(radiance) / (np.asarray(solar_flux) * np.cos(np.deg2rad(solar_zenith)))


def compute_validation_flags(
    toa_reflec,
    config: Optional[ValidationConfig] = None,
) -> int:
    """
    Land, cloud/ice and TOA out-of-range bits of one pixel.

    Parameters
    ----------
    toa_reflec : array_like
        TOA reflectances of the 15 MERIS bands.
    config : ValidationConfig, optional
        Band numbers (1-based) and thresholds of the tests.

    Returns
    -------
    int
        Combination of ``VALIDATION_LAND``, ``VALIDATION_CLOUD_ICE`` and
        ``VALIDATION_TOA_OUT_OF_RANGE``.

    Notes
    -----
    With the default configuration a pixel is land if
    ``rho_10 > rho_6 and rho_13 > 0.0475``, cloud or ice if
    ``rho_14 > 0.2`` and TOA out of range if ``rho_13 > 0.035``.
    Comparisons involving NaN are false.
    """
    if config is None:
        config = ValidationConfig()
    rho = np.asarray(toa_reflec, dtype=np.float64)

    def band(number: int) -> float:
        return rho[number - 1]

    value = 0
    if (band(config.land_band_index) > band(config.land_reference_band_index)
            and band(config.land_threshold_band_index) > config.land_threshold):
        value |= VALIDATION_LAND
    if band(config.cloud_ice_band_index) > config.cloud_ice_threshold:
        value |= VALIDATION_CLOUD_ICE
    if band(config.toa_oor_band_index) > config.toa_oor_threshold:
        value |= VALIDATION_TOA_OUT_OF_RANGE
    return value
