"""
Optical water type variants.

An optical water type bundles everything the classification needs to know
about one set of class statistics:

- the wavelengths the input spectrum is sampled at
- the number of output classes
- where the class statistics come from
- how the raw memberships are mapped to the output classes
- whether spectra are normalized by their integral before classification

The variants are plain data; the membership mapping is a function reference.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np

from correct_watertype.auxdata import AuxdataSource
from correct_watertype.constants import (
    COASTAL_WAVELENGTHS,
    GLASS_ALL_WAVELENGTHS,
    HYPERSPECTRAL_MAX_DISTANCE,
    INLAND_ALL_WAVELENGTHS,
)
from correct_watertype.exceptions import ConfigurationError


def identity(memberships: np.ndarray) -> np.ndarray:
    """Use the raw memberships as classes."""
    return np.array(memberships, dtype=np.float64)


def merge_trailing_classes(class_count: int) -> Callable[[np.ndarray], np.ndarray]:
    """
    Mapping that keeps the first ``class_count - 1`` memberships and sums the
    remaining ones into the last class.

    Examples
    --------
    >>> merge = merge_trailing_classes(3)
    >>> merge(np.array([0.5, 0.25, 0.125, 0.125])).tolist()
    [0.5, 0.25, 0.25]
    """
    keep = class_count - 1

    def mapping(memberships: np.ndarray) -> np.ndarray:
        memberships = np.asarray(memberships, dtype=np.float64)
        classes = np.zeros(class_count)
        classes[:keep] = memberships[:keep]
        classes[keep] = np.sum(memberships[keep:])
        return classes

    return mapping


@dataclass(frozen=True)
class OpticalWaterType:
    """
    One optical water type variant.

    Attributes
    ----------
    name : str
        Variant name.
    wavelengths : tuple of float
        Wavelengths [nm] of the input spectrum.
    class_count : int
        Number of output classes after the membership mapping.
    auxdata_source : AuxdataSource
        Location of the class statistics.
    map_memberships : callable
        Raw memberships -> output classes.
    normalize_spectra : bool
        Divide the spectrum by its trapezoidal integral before classifying.
    """

    name: str
    wavelengths: Tuple[float, ...]
    class_count: int
    auxdata_source: AuxdataSource
    map_memberships: Callable[[np.ndarray], np.ndarray] = identity
    normalize_spectra: bool = False

    @property
    def band_count(self) -> int:
        return len(self.wavelengths)

    def load_auxdata(self, root: str = ""):
        """Load the class statistics reduced to this type's wavelengths."""
        return self.auxdata_source.load(self.wavelengths, root=root)


_COASTAL_SOURCE = AuxdataSource(
    means_path="/auxdata/coastal/owt16_meris_stats_101119_5band.hdf",
    means_variable="class_means",
    covariance_path="/auxdata/coastal/owt16_meris_stats_101119_5band.hdf",
    covariance_variables=("class_covariance", "Yinv"),
)

_INLAND_SOURCE = AuxdataSource(
    means_path="/auxdata/inland/rrs_owt_means_inland.hdf",
    means_variable="class_means",
    covariance_path="/auxdata/inland/rrs_owt_cov_inland.hdf",
    covariance_variables=("rrs_cov",),
    wavelength_grid=INLAND_ALL_WAVELENGTHS,
    exact_match=True,
)

_GLASS_5C_SOURCE = AuxdataSource(
    means_path="/auxdata/glass/Rrs_Glass_5C_owt_stats_140805.hdf",
    means_variable="class_means",
    covariance_path="/auxdata/glass/Rrs_Glass_5C_owt_stats_140805.hdf",
    covariance_variables=("covariance",),
    wavelength_grid=GLASS_ALL_WAVELENGTHS,
    max_distance=HYPERSPECTRAL_MAX_DISTANCE,
)

_INLAND_WAVELENGTHS = (412.0, 443.0, 490.0, 510.0, 560.0, 620.0, 665.0, 680.0, 709.0, 754.0)
_GLASS_WAVELENGTHS = (442.6, 489.9, 509.8, 559.7, 619.6, 664.6, 680.8, 708.3, 753.4)

# 16 raw classes; classes 9-16 are reported as one
COASTAL = OpticalWaterType(
    name="COASTAL",
    wavelengths=COASTAL_WAVELENGTHS,
    class_count=9,
    auxdata_source=_COASTAL_SOURCE,
    map_memberships=merge_trailing_classes(9),
)

INLAND = OpticalWaterType(
    name="INLAND",
    wavelengths=_INLAND_WAVELENGTHS,
    class_count=7,
    auxdata_source=_INLAND_SOURCE,
)

INLAND_NO_BLUE_BAND = OpticalWaterType(
    name="INLAND_NO_BLUE_BAND",
    wavelengths=_INLAND_WAVELENGTHS[1:],
    class_count=7,
    auxdata_source=_INLAND_SOURCE,
)

GLASS_5C = OpticalWaterType(
    name="GLASS_5C",
    wavelengths=_GLASS_WAVELENGTHS,
    class_count=5,
    auxdata_source=_GLASS_5C_SOURCE,
)

GLASS_5C_NORMALIZED = OpticalWaterType(
    name="GLASS_5C_NORMALIZED",
    wavelengths=_GLASS_WAVELENGTHS,
    class_count=5,
    auxdata_source=_GLASS_5C_SOURCE,
    normalize_spectra=True,
)

OWT_TYPES: Dict[str, OpticalWaterType] = {
    owt.name: owt
    for owt in (COASTAL, INLAND, INLAND_NO_BLUE_BAND, GLASS_5C, GLASS_5C_NORMALIZED)
}


def get_owt_type(name: str) -> OpticalWaterType:
    """
    Look up a water type variant by name (case insensitive).

    Raises
    ------
    ConfigurationError
        If the name is unknown.
    """
    try:
        return OWT_TYPES[name.upper()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown optical water type '{name}'",
            {"available": sorted(OWT_TYPES)},
        ) from None
