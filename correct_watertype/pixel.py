"""
Per-pixel input record of the atmospheric correction.
"""

from dataclasses import dataclass

import numpy as np

from correct_watertype.constants import (
    CLOUD_BIT_INDEX,
    CLOUD_BUFFER_BIT_INDEX,
    CLOUD_SHADOW_BIT_INDEX,
    L1_INVALID_FLAG,
    MERIS_NUM_BANDS,
    MIXEDPIXEL_BIT_INDEX,
    SNOW_ICE_BIT_INDEX,
    VALIDATION_CLOUD_ICE,
    VALIDATION_LAND,
    VALIDATION_TOA_OUT_OF_RANGE,
)
from correct_watertype.exceptions import DimensionMismatchError


def is_bit_set(flags: int, bit_index: int) -> bool:
    """True if bit ``bit_index`` of ``flags`` is set."""
    return (int(flags) & (1 << bit_index)) != 0


def has_mask(flags: int, mask: int) -> bool:
    """True if all bits of ``mask`` are set in ``flags``."""
    return (int(flags) & mask) == mask


@dataclass
class PixelSample:
    """
    Input of the correction for one pixel.

    Attributes
    ----------
    toa_radiance : ndarray
        TOA radiance of the 15 MERIS bands [W m-2 sr-1 um-1].
    solar_flux : ndarray
        Extraterrestrial solar flux of the 15 bands, including the sun-earth
        distance [W m-2 um-1].
    solar_zenith, solar_azimuth : float
        Sun angles [deg].
    view_zenith, view_azimuth : float
        Satellite angles as seen from the pixel [deg].
    altitude : float
        Surface altitude [m].
    pressure : float
        Surface pressure [hPa].
    ozone : float
        Total ozone column [DU].
    l1_flags : int
        L1b flags.
    l1p_flags : int
        L1P pixel classification flags.
    validation : int
        TOA validation bits (see :mod:`correct_watertype.validation`).
    detector_index : int
        Detector that recorded the pixel, for the smile correction.
    pixel_x : int
        Image column.
    nadir_column_index : int
        Column of the nadir pixel.
    full_resolution : bool
        Full (300 m) or reduced (1200 m) resolution product.
    """

    toa_radiance: np.ndarray
    solar_flux: np.ndarray
    solar_zenith: float
    solar_azimuth: float
    view_zenith: float
    view_azimuth: float
    altitude: float = 0.0
    pressure: float = 1013.2
    ozone: float = 350.0
    l1_flags: int = 0
    l1p_flags: int = 0
    validation: int = 0
    detector_index: int = 0
    pixel_x: int = 0
    nadir_column_index: int = 0
    full_resolution: bool = False

    def __post_init__(self):
        self.toa_radiance = np.asarray(self.toa_radiance, dtype=np.float64)
        self.solar_flux = np.asarray(self.solar_flux, dtype=np.float64)
        for name in ("toa_radiance", "solar_flux"):
            values = getattr(self, name)
            if values.shape != (MERIS_NUM_BANDS,):
                raise DimensionMismatchError(MERIS_NUM_BANDS, values.size, name)

    @property
    def is_land(self) -> bool:
        return has_mask(self.validation, VALIDATION_LAND)

    @property
    def is_cloud_ice(self) -> bool:
        return has_mask(self.validation, VALIDATION_CLOUD_ICE)

    @property
    def is_toa_out_of_range(self) -> bool:
        return has_mask(self.validation, VALIDATION_TOA_OUT_OF_RANGE)

    @property
    def is_l1_invalid(self) -> bool:
        return has_mask(self.l1_flags, L1_INVALID_FLAG)

    @property
    def is_cloud(self) -> bool:
        return is_bit_set(self.l1p_flags, CLOUD_BIT_INDEX)

    @property
    def is_cloud_related(self) -> bool:
        """Cloud, cloud buffer, cloud shadow, snow/ice or mixed pixel."""
        return any(
            is_bit_set(self.l1p_flags, bit)
            for bit in (
                CLOUD_BIT_INDEX,
                CLOUD_BUFFER_BIT_INDEX,
                CLOUD_SHADOW_BIT_INDEX,
                SNOW_ICE_BIT_INDEX,
                MIXEDPIXEL_BIT_INDEX,
            )
        )
