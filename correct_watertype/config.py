"""
Processing configuration for the classification and the glint correction.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict

from correct_watertype.constants import (
    AVERAGE_SALINITY,
    AVERAGE_TEMPERATURE,
    TOSA_OOS_THRESHOLD,
)
from correct_watertype.exceptions import ConfigurationError


class ReflectanceUnit(Enum):
    """Reflectance convention; irradiance reflectance = radiance reflectance * pi"""
    RADIANCE = "radiance_reflectances"
    IRRADIANCE = "irradiance_reflectances"


def _coerce_unit(value) -> ReflectanceUnit:
    if isinstance(value, ReflectanceUnit):
        return value
    for unit in ReflectanceUnit:
        if value in (unit.name, unit.value):
            return unit
    raise ConfigurationError(
        f"Unknown reflectance unit '{value}'",
        {"available": [u.name for u in ReflectanceUnit]},
    )


def _from_dict(cls, values: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} keys", {"keys": unknown}
        )
    return cls(**values)


@dataclass
class GlintCorrectionConfig:
    """Glint/atmospheric correction configuration"""

    # Neural nets
    atmo_net: str = "atmo_correct_meris/37x77x97_100157.4.net"
    inv_aot_ang_net: str = "inv_aotang/97x77x37_326185.2.net"
    autoassociative_net: str = "atmo_aann/21x5x21_262.5.net"
    normalization_net: str = "atmo_normalization/90_2.8.net"
    use_normalization: bool = False

    # Water parameters used when no per-pixel values are given
    average_salinity: float = AVERAGE_SALINITY
    average_temperature: float = AVERAGE_TEMPERATURE

    # Thresholds
    tosa_oos_threshold: float = TOSA_OOS_THRESHOLD

    output_reflectance: ReflectanceUnit = ReflectanceUnit.IRRADIANCE
    smile_correction: bool = False

    def __post_init__(self):
        self.output_reflectance = _coerce_unit(self.output_reflectance)
        if self.tosa_oos_threshold <= 0:
            raise ConfigurationError(
                "TOSA out-of-scope threshold must be positive",
                {"tosa_oos_threshold": self.tosa_oos_threshold},
            )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "GlintCorrectionConfig":
        return _from_dict(cls, values)


@dataclass
class ClassificationConfig:
    """Optical water type classification configuration"""
    owt_type: str = "COASTAL"
    input_reflectance: ReflectanceUnit = ReflectanceUnit.RADIANCE
    auxdata_root: str = ""

    def __post_init__(self):
        self.input_reflectance = _coerce_unit(self.input_reflectance)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ClassificationConfig":
        return _from_dict(cls, values)


@dataclass
class ValidationConfig:
    """TOA reflectance validation thresholds (1-based MERIS band numbers)"""
    land_band_index: int = 10
    land_reference_band_index: int = 6
    land_threshold_band_index: int = 13
    land_threshold: float = 0.0475
    cloud_ice_band_index: int = 14
    cloud_ice_threshold: float = 0.2
    toa_oor_band_index: int = 13
    toa_oor_threshold: float = 0.035

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ValidationConfig":
        return _from_dict(cls, values)
