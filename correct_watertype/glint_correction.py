"""
Neural-network glint and atmospheric correction of one pixel.

The correction chains the TOSA model with four neural nets:

1. The TOSA model converts TOA radiances to TOSA reflectances.
2. The inverse AOT/Angstrom net retrieves the aerosol optical thickness at
   560 nm and the Angstrom exponent.
3. The autoassociative net reconstructs the TOSA spectrum. The deviation of
   the reconstruction from the input is the TOSA quality indicator.
4. The atmosphere net retrieves the water leaving reflectances.
5. The optional normalization net removes the viewing geometry dependence
   of the water leaving reflectances.

Every condition that makes the result questionable is reported as a flag bit
of :class:`GlintResult`; flags are only ever raised, never cleared.

References
----------
.. [1] Doerffer, R. and Schiller, H. (2007). The MERIS Case 2 water
       algorithm. Int. J. Remote Sensing, 28:517-535.
.. [2] Kramer, M.A. (1991). Nonlinear principal component analysis using
       autoassociative neural networks. AIChE Journal, 37:233-243.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from correct_watertype import neuralnet
from correct_watertype.config import GlintCorrectionConfig, ReflectanceUnit
from correct_watertype.constants import (
    ANCILLARY_INVALID,
    AOT_OUT_OF_RANGE,
    CLOUD_ICE,
    FLAG_MASKS,
    INPUT_INVALID,
    L2R_INVALID,
    L2R_INVALID_QUALITY,
    L2R_SUSPECT,
    L2R_SUSPECT_QUALITY,
    LAND,
    NET_TOSA_INPUT_OFFSET,
    NUM_TOSA_BANDS,
    OUTPUT_BAND_INDEX,
    OZONE_RANGE,
    PRESSURE_RANGE,
    QUALITY_NUM_DIFFS,
    QUALITY_SCALE,
    SOLAR_ZENITH_TOO_LARGE,
    TOA_OUT_OF_RANGE,
    TOSA_OUT_OF_RANGE,
    TOSA_OUT_OF_SCOPE,
    VIEW_ANGLE_OFFSET,
    VIEW_ANGLE_SLOPE,
)
from correct_watertype.exceptions import DimensionMismatchError
from correct_watertype.neuralnet import NeuralNetModel
from correct_watertype.pixel import PixelSample
from correct_watertype.tosa import SmileAuxdata, TosaModel

logger = logging.getLogger(__name__)


def _nan_bands() -> np.ndarray:
    return np.full(NUM_TOSA_BANDS, np.nan)


@dataclass
class GlintResult:
    """
    Correction result of one pixel.

    Reflectance vectors hold the 12 correction bands. Values that were not
    computed are NaN.

    Attributes
    ----------
    tosa_reflec : ndarray
        TOSA radiance reflectance.
    auto_tosa_reflec : ndarray
        TOSA radiance reflectance reconstructed by the autoassociative net.
    reflec : ndarray
        Water leaving reflectance, radiance or irradiance reflectance
        depending on the configuration.
    norm_reflec : ndarray
        Normalized water leaving radiance reflectance.
    tosa_quality_indicator : float
        Deviation of the reconstructed TOSA spectrum.
    tau550 : float
        Aerosol optical thickness at 560 nm.
    angstrom : float
        Angstrom exponent.
    flags : int
        Raised flag bits.
    tau778, tau865, glint_ratio, btsm, atot : float
        Products of earlier net versions, not computed (NaN).
    """

    tosa_reflec: np.ndarray = field(default_factory=_nan_bands)
    auto_tosa_reflec: np.ndarray = field(default_factory=_nan_bands)
    reflec: np.ndarray = field(default_factory=_nan_bands)
    norm_reflec: np.ndarray = field(default_factory=_nan_bands)
    tosa_quality_indicator: float = np.nan
    tau550: float = np.nan
    angstrom: float = np.nan
    flags: int = 0
    tau778: float = np.nan
    tau865: float = np.nan
    glint_ratio: float = np.nan
    btsm: float = np.nan
    atot: float = np.nan

    def raise_flag(self, mask: int) -> None:
        self.flags |= mask

    def has_flag(self, mask: int) -> bool:
        return (self.flags & mask) == mask

    @property
    def flag_names(self):
        """Names of the raised flags, in bit order."""
        return [name for name, mask in FLAG_MASKS if self.flags & mask]

    @classmethod
    def invalid(cls) -> "GlintResult":
        """Result of a pixel that could not be processed."""
        return cls(flags=INPUT_INVALID)


# =============================================================================
# Helpers
# =============================================================================

def correct_view_angle(
    view_zenith_deg: float,
    pixel_x: int,
    center_pixel: int,
    full_resolution: bool,
) -> float:
    """
    Correct the viewing zenith angle for the across-track position.

    Parameters
    ----------
    view_zenith_deg : float
        Viewing zenith angle [deg].
    pixel_x : int
        Image column of the pixel.
    center_pixel : int
        Image column of the nadir pixel.
    full_resolution : bool
        The slope per pixel is a quarter in full resolution.

    Returns
    -------
    float
        Corrected viewing zenith angle [deg].
    """
    slope = VIEW_ANGLE_SLOPE / 4.0 if full_resolution else VIEW_ANGLE_SLOPE
    return view_zenith_deg + abs(pixel_x - center_pixel) * slope + VIEW_ANGLE_OFFSET


def azimuth_difference(view_azimuth_deg: float, sun_azimuth_deg: float) -> float:
    """Azimuth difference folded into [0, 180] deg."""
    diff = np.deg2rad(view_azimuth_deg - sun_azimuth_deg)
    return float(np.rad2deg(np.arccos(np.cos(diff))))


def compute_xyz_coordinates(view_zenith_rad: float, azimuth_difference_rad: float) -> np.ndarray:
    """Cartesian viewing direction (x, y, z) used as net input."""
    sin_view = np.sin(view_zenith_rad)
    return np.array([
        sin_view * np.cos(azimuth_difference_rad),
        sin_view * np.sin(azimuth_difference_rad),
        np.cos(view_zenith_rad),
    ])


def get_chi_sqr_from_largest_diffs(arr1, arr2, num_diffs: int = QUALITY_NUM_DIFFS) -> float:
    """
    Mean of the ``num_diffs`` largest squared relative differences.

    Parameters
    ----------
    arr1, arr2 : array_like
        Reference and comparison values. Elements where ``arr1`` is zero
        contribute a difference of zero.
    num_diffs : int, optional
        Number of largest differences to average.

    Returns
    -------
    float

    Examples
    --------
    >>> get_chi_sqr_from_largest_diffs([1.0, 2.0, 4.0], [0.5, 2.0, 4.0], 2)
    0.125
    """
    a1 = np.asarray(arr1, dtype=np.float64)
    a2 = np.asarray(arr2, dtype=np.float64)
    diff = np.zeros_like(a1)
    nonzero = a1 != 0.0
    diff[nonzero] = ((a1[nonzero] - a2[nonzero]) / a1[nonzero]) ** 2
    largest = np.sort(diff)[::-1][:num_diffs]
    return float(np.sum(largest) / num_diffs)


def tosa_quality_indicator(rl_tosa, auto_r_tosa) -> float:
    """
    Quality of the TOSA spectrum.

    Compares ``log(rl_tosa)`` with ``log(auto_r_tosa / pi)``, where
    ``auto_r_tosa`` is the irradiance reflectance reconstructed by the
    autoassociative net.
    """
    log_rl_tosa = neuralnet.log(rl_tosa)
    log_auto_rl_tosa = neuralnet.log(neuralnet.divide_pi(auto_r_tosa))
    return get_chi_sqr_from_largest_diffs(log_rl_tosa, log_auto_rl_tosa) * QUALITY_SCALE


def expand_to_band_layout(values: Sequence[float], fill: float = np.nan) -> np.ndarray:
    """
    Place 12 band values into the 13 output slots.

    Slot 10 belongs to the retired band and receives ``fill``; slots above it
    take the value of the band one index lower.
    """
    values = np.asarray(values, dtype=np.float64)
    out = np.full(len(OUTPUT_BAND_INDEX), fill)
    for slot, index in enumerate(OUTPUT_BAND_INDEX):
        if index is not None:
            out[slot] = values[index]
    return out


def is_ancillary_data_valid(ozone: float, pressure: float) -> bool:
    return (OZONE_RANGE[0] <= ozone <= OZONE_RANGE[1]
            and PRESSURE_RANGE[0] <= pressure <= PRESSURE_RANGE[1])


def is_tosa_reflectance_valid(net_input, atmosphere_net: NeuralNetModel) -> bool:
    """
    True if the log TOSA reflectances of ``net_input`` lie inside the trained
    range of the atmosphere net. NaN values are invalid.
    """
    return not atmosphere_net.inputs_out_of_range(net_input, start=NET_TOSA_INPUT_OFFSET)


# =============================================================================
# Pipeline
# =============================================================================

def _check_input_count(net, expected: int):
    if net.input_count != expected:
        raise DimensionMismatchError(expected, net.input_count, "neural net input")


class GlintCorrectionPipeline:
    """
    Per-pixel glint and atmospheric correction.

    Parameters
    ----------
    atmosphere_net : NeuralNetModel
        Geometry + log TOSA irradiance reflectance -> log water leaving
        radiance reflectance.
    inv_aot_ang_net : NeuralNetModel
        Geometry + log TOSA irradiance reflectance -> (aot560, angstrom).
    autoassociative_net : NeuralNetModel
        Geometry + log TOSA irradiance reflectance -> log TOSA irradiance
        reflectance.
    normalization_net : NeuralNetModel, optional
        Sun zenith, view zenith, azimuth difference + log water leaving
        irradiance reflectance -> log normalized irradiance reflectance.
    smile_auxdata : SmileAuxdata, optional
        Enables the smile correction of the solar flux.
    config : GlintCorrectionConfig, optional
        Thresholds, output unit and default water parameters.

    Raises
    ------
    DimensionMismatchError
        If a net does not have the number of inputs built for it.

    Notes
    -----
    Instances hold only read-only models and can be shared between threads.
    """

    def __init__(
        self,
        atmosphere_net: NeuralNetModel,
        inv_aot_ang_net: NeuralNetModel,
        autoassociative_net: NeuralNetModel,
        normalization_net: Optional[NeuralNetModel] = None,
        smile_auxdata: Optional[SmileAuxdata] = None,
        config: Optional[GlintCorrectionConfig] = None,
    ):
        tosa_inputs = NET_TOSA_INPUT_OFFSET + NUM_TOSA_BANDS
        for net in (atmosphere_net, inv_aot_ang_net, autoassociative_net):
            _check_input_count(net, tosa_inputs)
        if normalization_net is not None:
            _check_input_count(normalization_net, 3 + NUM_TOSA_BANDS)

        self.atmosphere_net = atmosphere_net
        self.inv_aot_ang_net = inv_aot_ang_net
        self.autoassociative_net = autoassociative_net
        self.normalization_net = normalization_net
        self.config = config if config is not None else GlintCorrectionConfig()
        self.tosa = TosaModel(smile_auxdata)

    @classmethod
    def from_config(
        cls,
        config: GlintCorrectionConfig,
        net_root: str = "",
        smile_auxdata: Optional[SmileAuxdata] = None,
    ) -> "GlintCorrectionPipeline":
        """Load the nets named in ``config`` relative to ``net_root``."""
        def load(name):
            return NeuralNetModel.from_file(net_root + name)

        atmosphere_net = load(config.atmo_net)
        inv_aot_ang_net = load(config.inv_aot_ang_net)
        autoassociative_net = load(config.autoassociative_net)
        normalization_net = load(config.normalization_net) if config.use_normalization else None
        logger.info(
            "Glint correction nets loaded (normalization: %s, smile correction: %s)",
            normalization_net is not None, config.smile_correction,
        )
        return cls(
            atmosphere_net=atmosphere_net,
            inv_aot_ang_net=inv_aot_ang_net,
            autoassociative_net=autoassociative_net,
            normalization_net=normalization_net,
            smile_auxdata=smile_auxdata if config.smile_correction else None,
            config=config,
        )

    def perform(
        self,
        pixel: PixelSample,
        temperature: Optional[float] = None,
        salinity: Optional[float] = None,
    ) -> GlintResult:
        """
        Correct one pixel.

        Parameters
        ----------
        pixel : PixelSample
            Pixel data.
        temperature : float, optional
            Water temperature [deg C]; the configured average if None or NaN.
        salinity : float, optional
            Water salinity [PSU]; the configured average if None or NaN.

        Returns
        -------
        GlintResult
            Only the flags are set if the pixel is land, cloud/ice or L1
            invalid.

        Raises
        ------
        NumericalError
            If the TOSA model rejects the pixel.
        """
        if temperature is None or np.isnan(temperature):
            temperature = self.config.average_temperature
        if salinity is None or np.isnan(salinity):
            salinity = self.config.average_salinity

        view_zenith_deg = correct_view_angle(
            pixel.view_zenith, pixel.pixel_x, pixel.nadir_column_index, pixel.full_resolution
        )
        view_zenith_rad = np.deg2rad(view_zenith_deg)
        sun_zenith_deg = pixel.solar_zenith
        sun_zenith_rad = np.deg2rad(sun_zenith_deg)
        azi_diff_deg = azimuth_difference(pixel.view_azimuth, pixel.solar_azimuth)
        xyz = compute_xyz_coordinates(view_zenith_rad, np.deg2rad(azi_diff_deg))

        result = GlintResult()
        if pixel.is_land:
            result.raise_flag(LAND)
        if pixel.is_cloud_ice:
            result.raise_flag(CLOUD_ICE)
        if pixel.is_toa_out_of_range:
            result.raise_flag(TOA_OUT_OF_RANGE)
        if result.has_flag(LAND) or result.has_flag(CLOUD_ICE) or pixel.is_l1_invalid:
            result.raise_flag(INPUT_INVALID)
            return result

        rl_tosa = self.tosa.compute_tosa_reflectance(pixel, view_zenith_rad, sun_zenith_rad)
        result.tosa_reflec = rl_tosa.copy()

        geometry = np.concatenate(([sun_zenith_deg], xyz, [temperature, salinity]))
        log_r_tosa = neuralnet.log_multiply_pi(rl_tosa)
        net_input = np.concatenate((geometry, log_r_tosa))
        if not is_tosa_reflectance_valid(net_input, self.atmosphere_net):
            result.raise_flag(TOSA_OUT_OF_RANGE)

        inv_out = self.inv_aot_ang_net.evaluate(net_input)
        aot560, angstrom = inv_out[0], inv_out[1]
        if (aot560 < self.inv_aot_ang_net.output_min[0]
                or aot560 > self.inv_aot_ang_net.output_max[0]):
            result.raise_flag(AOT_OUT_OF_RANGE)

        if (sun_zenith_deg > self.atmosphere_net.input_max[0]
                or sun_zenith_deg < self.atmosphere_net.input_min[0]):
            result.raise_flag(SOLAR_ZENITH_TOO_LARGE)

        if not is_ancillary_data_valid(pixel.ozone, pixel.pressure):
            result.raise_flag(ANCILLARY_INVALID)

        aa_out = self.autoassociative_net.evaluate(net_input)
        auto_r_tosa = neuralnet.exp(aa_out)
        result.auto_tosa_reflec = neuralnet.divide_pi(auto_r_tosa)
        quality = tosa_quality_indicator(rl_tosa, auto_r_tosa)
        result.tosa_quality_indicator = quality
        if quality > self.config.tosa_oos_threshold:
            result.raise_flag(TOSA_OUT_OF_SCOPE)
        if quality > L2R_INVALID_QUALITY or pixel.is_cloud:
            result.raise_flag(L2R_INVALID)
        if quality > L2R_SUSPECT_QUALITY or pixel.is_cloud_related:
            result.raise_flag(L2R_SUSPECT)

        atmo_out = self.atmosphere_net.evaluate(net_input)
        reflec = neuralnet.exp(atmo_out)[:NUM_TOSA_BANDS]
        if self.config.output_reflectance is ReflectanceUnit.IRRADIANCE:
            result.reflec = neuralnet.multiply_pi(reflec)
        else:
            result.reflec = reflec

        if self.normalization_net is not None:
            norm_input = np.concatenate(
                ([sun_zenith_deg, view_zenith_deg, azi_diff_deg], neuralnet.log_multiply_pi(reflec))
            )
            norm_out = self.normalization_net.evaluate(norm_input)
            result.norm_reflec = neuralnet.exp_divide_pi(norm_out[:NUM_TOSA_BANDS])

        result.tau550 = float(aot560)
        result.angstrom = float(angstrom)
        return result
