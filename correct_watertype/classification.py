"""
Per-pixel optical water type classification.

The input reflectances are converted to subsurface remote sensing
reflectances, optionally normalized by their spectral integral, and scored
against the class statistics of the chosen optical water type. The raw
memberships are mapped to the output classes of the water type, and the
dominant class and the class sums are derived from them.

References
----------
.. [1] Lee, Z., Carder, K.L., Mobley, C.D., Steward, R.G. and Patch, J.S.
       (1998). Hyperspectral remote sensing for shallow waters. I. A
       semianalytical model. Applied Optics, 37:6329-6338.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from correct_watertype.auxdata import Auxdata
from correct_watertype.config import ClassificationConfig, ReflectanceUnit
from correct_watertype.constants import (
    BAND_MATCH_MAX_DISTANCE,
    CLASS_SUM_NO_DATA,
    DOMINANT_CLASS_NO_DATA,
)
from correct_watertype.exceptions import (
    ClassificationError,
    ConfigurationError,
    DimensionMismatchError,
)
from correct_watertype.fuzzy import FuzzyClassifier
from correct_watertype.owt_types import OpticalWaterType, get_owt_type
from correct_watertype.special import trapz

logger = logging.getLogger(__name__)

# Smallest positive double; a class must exceed it to be dominant
_MIN_CLASS_VALUE = np.nextafter(0.0, 1.0)


@dataclass
class ClassificationResult:
    """
    Classification of one pixel.

    Attributes
    ----------
    memberships : ndarray
        Class memberships after the water type mapping.
    norm_memberships : ndarray
        Mapped memberships normalized to a raw sum of one.
    dominant_class : int
        1-based index of the largest class, -1 if no class is positive.
    class_sum : float
        Sum of ``memberships``.
    norm_class_sum : float
        Sum of ``norm_memberships``.
    rrs : ndarray, optional
        Subsurface reflectances the memberships were computed from.
    """

    memberships: np.ndarray
    norm_memberships: np.ndarray
    dominant_class: int
    class_sum: float
    norm_class_sum: float
    rrs: Optional[np.ndarray] = None

    @classmethod
    def invalid(cls, class_count: int) -> "ClassificationResult":
        """No-data result for a pixel that could not be classified."""
        return cls(
            memberships=np.full(class_count, np.nan),
            norm_memberships=np.full(class_count, np.nan),
            dominant_class=DOMINANT_CLASS_NO_DATA,
            class_sum=CLASS_SUM_NO_DATA,
            norm_class_sum=np.nan,
        )

    @property
    def is_valid(self) -> bool:
        # memberships are never negative, so -1 only marks no-data
        return self.class_sum != CLASS_SUM_NO_DATA


def convert_to_subsurface_rrs(
    reflectance,
    input_unit: ReflectanceUnit = ReflectanceUnit.RADIANCE,
):
    """
    Convert above-water reflectance to subsurface remote sensing reflectance.

    Parameters
    ----------
    reflectance : float or array_like
        Above-water reflectance.
    input_unit : ReflectanceUnit, optional
        Convention of ``reflectance``.

    Returns
    -------
    float or ndarray
        Subsurface remote sensing reflectance [1/sr].

    Notes
    -----
    .. math::

        r = \\rho / \\pi, \\quad r_{rs} = \\frac{r}{0.52 + 1.7 r}

    following Lee et al. (1998). Irradiance reflectances are divided by
    pi once more after the conversion.
    """
    r = np.asarray(reflectance, dtype=np.float64) / np.pi
    rrs = r / (0.52 + 1.7 * r)
    if input_unit is ReflectanceUnit.IRRADIANCE:
        rrs = rrs / np.pi
    return rrs


def normalize_spectrum(wavelengths: Sequence[float], rrs) -> np.ndarray:
    """Divide a spectrum by its trapezoidal integral over ``wavelengths``."""
    rrs = np.asarray(rrs, dtype=np.float64)
    return rrs / trapz(wavelengths, rrs)


def normalize_memberships(memberships) -> np.ndarray:
    """
    Scale memberships so they sum to one.

    Examples
    --------
    >>> normalize_memberships([1.0, 3.0]).tolist()
    [0.25, 0.75]
    """
    m = np.asarray(memberships, dtype=np.float64)
    return m / np.sum(m)


def dominant_class(classes) -> int:
    """1-based index of the first largest positive class, -1 if none."""
    best = DOMINANT_CLASS_NO_DATA
    best_value = _MIN_CLASS_VALUE
    for i, value in enumerate(classes):
        if value > best_value:
            best_value = value
            best = i + 1
    return best


def find_band_index(
    target_wavelength: float,
    band_wavelengths: Sequence[float],
    max_distance: float = BAND_MATCH_MAX_DISTANCE,
) -> Optional[int]:
    """
    Index of the band closest to ``target_wavelength``.

    Returns None if no band lies closer than ``max_distance`` [nm]. On equal
    distances the first band wins.
    """
    best_index = None
    best_distance = np.inf
    for i, wavelength in enumerate(band_wavelengths):
        distance = abs(wavelength - target_wavelength)
        if distance < best_distance and distance < max_distance:
            best_distance = distance
            best_index = i
    return best_index


def select_bands(
    owt_type: OpticalWaterType,
    band_wavelengths: Sequence[float],
) -> np.ndarray:
    """
    Map the water type wavelengths onto the available input bands.

    Raises
    ------
    ConfigurationError
        If a water type wavelength has no input band within 10 nm.
    """
    indices = []
    for wavelength in owt_type.wavelengths:
        index = find_band_index(wavelength, band_wavelengths)
        if index is None:
            raise ConfigurationError(
                f"Not able to find band with wavelength '{wavelength:4.3f}'",
                {"owt_type": owt_type.name},
            )
        indices.append(index)
    return np.array(indices, dtype=int)


class OWTClassification:
    """
    Optical water type classification of single pixels.

    Parameters
    ----------
    owt_type : OpticalWaterType
        Water type variant.
    auxdata : Auxdata
        Class statistics for the variant's wavelengths.
    input_reflectance : ReflectanceUnit, optional
        Convention of the input reflectances.

    Examples
    --------
    >>> from correct_watertype.owt_types import COASTAL
    >>> classification = OWTClassification(COASTAL, COASTAL.load_auxdata(root))  # doctest: +SKIP
    >>> result = classification.classify([0.0307, 0.0414, 0.05, 0.0507, 0.0454])  # doctest: +SKIP
    """

    def __init__(
        self,
        owt_type: OpticalWaterType,
        auxdata: Auxdata,
        input_reflectance: ReflectanceUnit = ReflectanceUnit.RADIANCE,
    ):
        if auxdata.band_count != owt_type.band_count:
            raise DimensionMismatchError(
                owt_type.band_count, auxdata.band_count, "auxdata wavelength"
            )
        self.owt_type = owt_type
        self.classifier = FuzzyClassifier(auxdata)
        self.input_reflectance = input_reflectance

    @classmethod
    def from_config(cls, config: ClassificationConfig) -> "OWTClassification":
        """
        Look up the configured water type and load its class statistics.

        Raises
        ------
        ConfigurationError
            If the water type is unknown or its statistics cannot be loaded.
        """
        owt_type = get_owt_type(config.owt_type)
        auxdata = owt_type.load_auxdata(config.auxdata_root)
        logger.info(
            "Classification set up for %s (%d classes, %s input)",
            owt_type.name, owt_type.class_count, config.input_reflectance.name,
        )
        return cls(owt_type, auxdata, config.input_reflectance)

    @property
    def class_count(self) -> int:
        return self.owt_type.class_count

    def subsurface_rrs(self, reflectances) -> np.ndarray:
        """Classifier input for the given above-water reflectances."""
        rrs = convert_to_subsurface_rrs(reflectances, self.input_reflectance)
        if self.owt_type.normalize_spectra:
            rrs = normalize_spectrum(self.owt_type.wavelengths, rrs)
        return rrs

    def classify(self, reflectances) -> ClassificationResult:
        """
        Classify one pixel.

        Parameters
        ----------
        reflectances : array_like
            Above-water reflectances at the water type wavelengths.

        Returns
        -------
        ClassificationResult
            The no-data result for NaN input or if the memberships cannot be
            computed.

        Raises
        ------
        DimensionMismatchError
            If the number of reflectances does not match the water type.
        """
        r = np.asarray(reflectances, dtype=np.float64)
        if r.ndim != 1 or r.size != self.owt_type.band_count:
            raise DimensionMismatchError(self.owt_type.band_count, r.size, "source sample")
        if np.isnan(r).any():
            return ClassificationResult.invalid(self.class_count)

        rrs = self.subsurface_rrs(r)
        try:
            memberships = self.classifier.compute_memberships(rrs)
        except ClassificationError as e:
            logger.debug("Classification failed: %s", e)
            return ClassificationResult.invalid(self.class_count)

        mapping = self.owt_type.map_memberships
        classes = mapping(memberships)
        norm_classes = mapping(normalize_memberships(memberships))
        return ClassificationResult(
            memberships=classes,
            norm_memberships=norm_classes,
            dominant_class=dominant_class(classes),
            class_sum=float(np.sum(classes)),
            norm_class_sum=float(np.sum(norm_classes)),
            rrs=rrs,
        )
