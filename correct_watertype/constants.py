"""
Constants for water type classification and neural-network atmospheric
correction.

This module contains constants used throughout the package, including:

- Sensor band layout (MERIS) and the band-skip convention of the
  corrected reflectance products
- Flag bit layout of the atmospheric correction result
- Rayleigh and ozone coefficients of the standard atmosphere layer
- Wavelength grids of the optical water type statistics
- No-data sentinels

References
----------
.. [1] Doerffer, R. and Schiller, H. (2007). The MERIS Case 2 water
       algorithm. Int. J. Remote Sensing, 28:517-535.
.. [2] Moore, T.S., Campbell, J.W. and Dowell, M.D. (2009). A class-based
       approach to characterizing and mapping the uncertainty of the MODIS
       ocean chlorophyll product. Remote Sens. Environ., 113:2424-2430.
"""

from typing import Tuple

# =============================================================================
# Physical Constants
# =============================================================================

#: Reference surface pressure of the standard atmosphere layer [hPa]
STANDARD_PRESSURE: float = 1013.2

#: Standard temperature [K] used in the barometric altitude formula
STANDARD_TEMPERATURE: float = 288.15

#: Temperature lapse rate [K/m]
LAPSE_RATE: float = 0.0065

#: Exponent of the barometric formula
BAROMETRIC_EXPONENT: float = 5.255

#: Minimum altitude [m] used for the pressure correction
MIN_ALTITUDE: float = 1.0

#: Depolarization factor of air used in the Rayleigh phase function
RAYLEIGH_DEPOLARIZATION: float = 0.0279

#: Coefficients of the Rayleigh optical thickness polynomial in
#: lambda^-4, lambda^-6 and lambda^-8 (lambda in micrometers)
RAYLEIGH_TAU_COEFFICIENTS: Tuple[float, float, float] = (0.008524, 9.63e-5, 1.1e-6)

# =============================================================================
# MERIS Band Layout
# =============================================================================

#: Number of MERIS L1b spectral bands
MERIS_NUM_BANDS: int = 15

#: Centre wavelengths [nm] of the 12 bands used by the correction
#: (MERIS bands 1-10, 12 and 13)
MERIS_WAVELENGTHS: Tuple[float, ...] = (
    412.3, 442.3, 489.7,
    509.6, 559.5, 619.4,
    664.3, 680.6, 708.1,
    753.1, 778.2, 864.6,
)

#: Number of bands of the TOSA and water leaving reflectance vectors
NUM_TOSA_BANDS: int = len(MERIS_WAVELENGTHS)

#: Indices of the L1b bands (0-based) forming the 12 band TOSA vector.
#: Band 11 (761 nm, O2 absorption) is not used.
TOSA_BAND_INDICES: Tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 11, 12)

#: Output slot -> internal band index of the 13 slot reflectance layout.
#: Slot 10 (band 11) is empty, slots above it shift down by one.
OUTPUT_BAND_INDEX: Tuple = (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, None, 10, 11)

#: Internal index of the band corrected for water vapour (708 nm)
WATER_VAPOUR_BAND_INDEX: int = 8

#: L1b indices of the 885 nm and 900 nm bands used for the water vapour ratio
WATER_VAPOUR_REFERENCE_INDICES: Tuple[int, int] = (13, 14)

#: Polynomial coefficients of the 708 nm water vapour transmission
H2O_COR_POLY: Tuple[float, float, float, float] = (
    0.3832989, 1.6527957, -1.5635101, 0.5311913,
)

#: Ozone absorption coefficients of the 12 TOSA bands [1/(1000 DU)]
OZONE_ABSORPTION: Tuple[float, ...] = (
    8.2e-004, 2.82e-003, 2.076e-002, 3.96e-002, 1.022e-001,
    1.059e-001, 5.313e-002, 3.552e-002, 1.895e-002, 8.38e-003,
    7.2e-004, 0.0,
)

# =============================================================================
# View Angle Correction
# =============================================================================

#: Constant offset of the view zenith correction [deg]
VIEW_ANGLE_OFFSET: float = -0.004793

#: Per-pixel slope of the view zenith correction in reduced resolution [deg]
VIEW_ANGLE_SLOPE: float = 0.0093247

# =============================================================================
# Flag Bit Layout
# =============================================================================

LAND: int = 0x01
CLOUD_ICE: int = 0x02
AOT_OUT_OF_RANGE: int = 0x04
TOA_OUT_OF_RANGE: int = 0x08
TOSA_OUT_OF_RANGE: int = 0x10
TOSA_OUT_OF_SCOPE: int = 0x20
SOLAR_ZENITH_TOO_LARGE: int = 0x40
ANCILLARY_INVALID: int = 0x80
SUNGLINT: int = 0x100
INPUT_INVALID: int = 0x800
L2R_INVALID: int = 0x1000
L2R_SUSPECT: int = 0x2000

#: Flag names and masks, in bit order
FLAG_MASKS: Tuple[Tuple[str, int], ...] = (
    ("LAND", LAND),
    ("CLOUD_ICE", CLOUD_ICE),
    ("AOT_OUT_OF_RANGE", AOT_OUT_OF_RANGE),
    ("TOA_OUT_OF_RANGE", TOA_OUT_OF_RANGE),
    ("TOSA_OUT_OF_RANGE", TOSA_OUT_OF_RANGE),
    ("TOSA_OUT_OF_SCOPE", TOSA_OUT_OF_SCOPE),
    ("SOLAR_ZENITH_TOO_LARGE", SOLAR_ZENITH_TOO_LARGE),
    ("ANCILLARY_INVALID", ANCILLARY_INVALID),
    ("SUNGLINT", SUNGLINT),
    ("INPUT_INVALID", INPUT_INVALID),
    ("L2R_INVALID", L2R_INVALID),
    ("L2R_SUSPECT", L2R_SUSPECT),
)

#: Validation bits (input of the correction, see validation module)
VALIDATION_LAND: int = 0x01
VALIDATION_CLOUD_ICE: int = 0x02
VALIDATION_TOA_OUT_OF_RANGE: int = 0x04

#: L1b "invalid" flag
L1_INVALID_FLAG: int = 0x80

#: Bit indices of the L1P pixel classification flags
COASTLINE_BIT_INDEX: int = 1
CLOUD_BIT_INDEX: int = 2
CLOUD_AMBIGUOUS_BIT_INDEX: int = 3
CLOUD_BUFFER_BIT_INDEX: int = 4
CLOUD_SHADOW_BIT_INDEX: int = 5
SNOW_ICE_BIT_INDEX: int = 6
MIXEDPIXEL_BIT_INDEX: int = 7
GLINTRISK_BIT_INDEX: int = 8

# =============================================================================
# Correction Thresholds
# =============================================================================

#: Default TOSA out-of-scope threshold of the quality indicator
TOSA_OOS_THRESHOLD: float = 0.05

#: Quality indicator above which the L2R product is invalid
L2R_INVALID_QUALITY: float = 3.0

#: Quality indicator above which the L2R product is suspect
L2R_SUSPECT_QUALITY: float = 1.0

#: Number of largest differences entering the quality indicator
QUALITY_NUM_DIFFS: int = 4

#: Scaling of the quality indicator
QUALITY_SCALE: float = 1.0e4

#: Number of geometry/ancillary inputs preceding the TOSA inputs of the nets
NET_TOSA_INPUT_OFFSET: int = 6

#: Valid ancillary ranges
OZONE_RANGE: Tuple[float, float] = (200.0, 500.0)  # DU
PRESSURE_RANGE: Tuple[float, float] = (500.0, 1100.0)  # hPa

#: Defaults for water temperature [deg C] and salinity [PSU]
AVERAGE_TEMPERATURE: float = 15.0
AVERAGE_SALINITY: float = 35.0

# =============================================================================
# Optical Water Type Statistics
# =============================================================================

#: Wavelengths [nm] of the coastal 5 band statistics
COASTAL_WAVELENGTHS: Tuple[float, ...] = (410.0, 443.0, 490.0, 510.0, 555.0)

#: Wavelengths [nm] of the inland water statistics
INLAND_ALL_WAVELENGTHS: Tuple[float, ...] = (
    412.0, 443.0, 490.0, 510.0, 531.0, 547.0, 555.0, 560.0, 620.0,
    665.0, 667.0, 670.0, 678.0, 680.0, 709.0, 748.0, 754.0,
)

#: Hyperspectral grid [nm] of the GLASS statistics (400-799 nm, 3 nm steps)
GLASS_ALL_WAVELENGTHS: Tuple[float, ...] = tuple(float(wl) for wl in range(400, 800, 3))

#: Maximum distance [nm] when matching wavelengths to the hyperspectral grid
HYPERSPECTRAL_MAX_DISTANCE: float = 1.5

#: Maximum distance [nm] when looking up an input band for a wavelength
BAND_MATCH_MAX_DISTANCE: float = 10.0

# =============================================================================
# No-Data Sentinels
# =============================================================================

DOMINANT_CLASS_NO_DATA: int = -1
CLASS_SUM_NO_DATA: float = -1.0
