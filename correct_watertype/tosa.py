"""
Top-of-standard-atmosphere (TOSA) reflectance.

The neural nets of the atmospheric correction are trained for a standard
atmosphere at 1013.2 hPa and a fixed ozone content. The TOSA model removes
the difference between the actual atmosphere and that standard: the
Rayleigh path radiance of the correction layer is added back, the ozone and
Rayleigh transmittances of the layer are divided out, and the result is
converted to radiance reflectance. The 708 nm band is additionally corrected
for water vapour absorption.

Optionally the solar flux is corrected for the spectral "smile" of the MERIS
detectors before it enters the computation.

References
----------
.. [1] Doerffer, R. (2008). Algorithm Theoretical Basis Document (ATBD)
       for the MERIS Case 2 water algorithm. GKSS Research Center.
.. [2] Bourg, L., D'Alba, L. and Colagrande, P. (2008). MERIS smile effect
       characterisation and correction. ESA technical note.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from correct_watertype import gases, rayleigh
from correct_watertype.constants import (
    MERIS_NUM_BANDS,
    MERIS_WAVELENGTHS,
    TOSA_BAND_INDICES,
    WATER_VAPOUR_BAND_INDEX,
    WATER_VAPOUR_REFERENCE_INDICES,
)
from correct_watertype.exceptions import DimensionMismatchError, InvalidInputError
from correct_watertype.pixel import PixelSample

_CHECKED_BANDS = np.array(TOSA_BAND_INDICES + WATER_VAPOUR_REFERENCE_INDICES)


def to_tosa_bands(values) -> np.ndarray:
    """Reduce a 15 band L1b vector to the 12 bands of the correction."""
    values = np.asarray(values, dtype=np.float64)
    if values.shape != (MERIS_NUM_BANDS,):
        raise DimensionMismatchError(MERIS_NUM_BANDS, values.size, "L1b band")
    return values[list(TOSA_BAND_INDICES)]


@dataclass(frozen=True)
class SmileAuxdata:
    """
    Solar flux per detector for the smile correction.

    Attributes
    ----------
    detector_sun_spectral_fluxes : ndarray
        Solar flux seen by each detector, shape (n_detectors, 15).
    theoretical_sun_spectral_fluxes : ndarray
        Nominal solar flux per band, shape (15,).
    """

    detector_sun_spectral_fluxes: np.ndarray
    theoretical_sun_spectral_fluxes: np.ndarray

    def __post_init__(self):
        detector = np.array(self.detector_sun_spectral_fluxes, dtype=np.float64)
        theoretical = np.array(self.theoretical_sun_spectral_fluxes, dtype=np.float64)
        if detector.ndim != 2 or detector.shape[1] != MERIS_NUM_BANDS:
            raise DimensionMismatchError(MERIS_NUM_BANDS, detector.shape[-1], "detector flux")
        if theoretical.shape != (MERIS_NUM_BANDS,):
            raise DimensionMismatchError(MERIS_NUM_BANDS, theoretical.size, "theoretical flux")
        detector.setflags(write=False)
        theoretical.setflags(write=False)
        object.__setattr__(self, "detector_sun_spectral_fluxes", detector)
        object.__setattr__(self, "theoretical_sun_spectral_fluxes", theoretical)

    @property
    def detector_count(self) -> int:
        return self.detector_sun_spectral_fluxes.shape[0]

    def correct(self, detector_index: int, solar_flux) -> np.ndarray:
        """Solar flux of the given detector."""
        check_detector_index(detector_index, self.detector_count)
        ratio = (self.detector_sun_spectral_fluxes[detector_index]
                 / self.theoretical_sun_spectral_fluxes)
        return np.asarray(solar_flux, dtype=np.float64) * ratio


def check_detector_index(detector_index: int, detector_count: int) -> None:
    """
    Raises
    ------
    InvalidInputError
        If ``detector_index`` is not in ``[0, detector_count)``. The MERIS
        invalid-detector marker -1 is rejected as well.
    """
    if not 0 <= detector_index < detector_count:
        raise InvalidInputError(
            "Detector index out of range",
            {"detector_index": detector_index, "detector_count": detector_count},
        )


def check_pixel_domain(pixel: PixelSample, detector_count: Optional[int] = None) -> None:
    """
    Reject pixels the TOSA model cannot be evaluated for.

    Parameters
    ----------
    pixel : PixelSample
        Pixel data.
    detector_count : int, optional
        Number of detectors of the smile correction; the detector index is
        not checked if None.

    Raises
    ------
    InvalidInputError
        If a radiance or solar flux of a used band is zero, negative or not
        finite, ozone or pressure are not positive, or the detector index is
        out of range.
    """
    if detector_count is not None:
        check_detector_index(pixel.detector_index, detector_count)
    for name in ("toa_radiance", "solar_flux"):
        values = getattr(pixel, name)[_CHECKED_BANDS]
        bad = ~(np.isfinite(values) & (values > 0.0))
        if bad.any():
            raise InvalidInputError(
                f"Non-positive or non-finite {name}",
                {"bands": _CHECKED_BANDS[bad].tolist()},
            )
    for name in ("ozone", "pressure"):
        value = getattr(pixel, name)
        if not np.isfinite(value) or value <= 0.0:
            raise InvalidInputError(f"Non-positive {name}", {name: value})


class TosaModel:
    """
    TOA radiance to TOSA radiance reflectance.

    Parameters
    ----------
    smile_auxdata : SmileAuxdata, optional
        Per-detector solar flux; no smile correction if None.

    Notes
    -----
    The model holds no per-pixel state and can be shared between threads.
    """

    def __init__(self, smile_auxdata: Optional[SmileAuxdata] = None):
        self.smile_auxdata = smile_auxdata
        self.wavelengths = np.array(MERIS_WAVELENGTHS)

    def solar_flux(self, pixel: PixelSample) -> np.ndarray:
        """12 band solar flux, smile corrected if configured."""
        flux = pixel.solar_flux
        if self.smile_auxdata is not None:
            flux = self.smile_auxdata.correct(pixel.detector_index, flux)
        return to_tosa_bands(flux)

    def compute_tosa_reflectance(
        self,
        pixel: PixelSample,
        view_zenith_rad: float,
        sun_zenith_rad: float,
    ) -> np.ndarray:
        """
        TOSA radiance reflectance of the 12 correction bands.

        Parameters
        ----------
        pixel : PixelSample
            Pixel data. Azimuths, altitude, pressure and ozone are taken
            from it.
        view_zenith_rad : float
            (Corrected) viewing zenith angle [rad].
        sun_zenith_rad : float
            Solar zenith angle [rad].

        Returns
        -------
        ndarray
            Radiance reflectance, shape (12,).

        Raises
        ------
        InvalidInputError
            If the pixel violates the domain of the model (see
            :func:`check_pixel_domain`), the sun or view zenith angle
            reaches 90 degrees, or a resulting reflectance is not positive.
            The latter happens for low surface pressure, where the removed
            Rayleigh path radiance exceeds the measured radiance.
        """
        detector_count = None if self.smile_auxdata is None else self.smile_auxdata.detector_count
        check_pixel_domain(pixel, detector_count)
        cos_sun = np.cos(sun_zenith_rad)
        sin_sun = np.sin(sun_zenith_rad)
        cos_view = np.cos(view_zenith_rad)
        sin_view = np.sin(view_zenith_rad)
        if cos_sun <= 0.0 or cos_view <= 0.0:
            raise InvalidInputError(
                "Zenith angle out of domain",
                {"sun_zenith": np.degrees(sun_zenith_rad), "view_zenith": np.degrees(view_zenith_rad)},
            )

        azi_diff_rad = np.arccos(np.cos(np.deg2rad(pixel.view_azimuth - pixel.solar_azimuth)))
        cos_azi_diff = np.cos(azi_diff_rad)

        sun_toa = self.solar_flux(pixel)
        l_toa = to_tosa_bands(pixel.toa_radiance)

        # correction layer
        mass = rayleigh.correction_layer_mass(pixel.pressure, pixel.altitude)
        tau_rayl_rest = rayleigh.rayleigh_optical_thickness(self.wavelengths, mass)
        cos_scat = rayleigh.scattering_angle_cosine(cos_sun, sin_sun, cos_view, sin_view, cos_azi_diff)
        phase = rayleigh.rayleigh_phase_function(cos_scat)

        # real atmosphere and correction layer use the same ozone content
        trans_oz_down_real = gases.ozone_transmittance(pixel.ozone, cos_sun)
        trans_oz_up_real = gases.ozone_transmittance(pixel.ozone, cos_view)
        trans_oz_down_rest = trans_oz_down_real
        trans_oz_up_rest = trans_oz_up_real
        trans_rayl_down_rest = rayleigh.rayleigh_transmittance(tau_rayl_rest, cos_sun)
        trans_rayl_up_rest = rayleigh.rayleigh_transmittance(tau_rayl_rest, cos_view)

        lrc_path = rayleigh.rayleigh_path_radiance(
            sun_toa, trans_oz_down_real, tau_rayl_rest, phase, cos_view
        )
        ed_tosa = sun_toa * cos_sun * trans_oz_down_rest * trans_rayl_down_rest
        l_tosa = (l_toa + lrc_path * trans_oz_up_real) / trans_oz_up_rest * trans_rayl_up_rest
        rl_tosa = l_tosa / ed_tosa

        rl_tosa[WATER_VAPOUR_BAND_INDEX] = gases.correct_water_vapour(
            rl_tosa[WATER_VAPOUR_BAND_INDEX], pixel.toa_radiance, pixel.solar_flux
        )

        bad = ~(np.isfinite(rl_tosa) & (rl_tosa > 0.0))
        if bad.any():
            raise InvalidInputError(
                "Non-positive TOSA reflectance",
                {"bands": np.flatnonzero(bad).tolist(), "pressure": pixel.pressure,
                 "altitude": pixel.altitude},
            )
        return rl_tosa
