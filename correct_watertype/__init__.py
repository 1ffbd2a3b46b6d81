"""
correct_watertype: Water Type Classification and Neural-Network Atmospheric Correction
=======================================================================================

A Python package for per-pixel processing of ocean colour imagery:

- fuzzy classification of remote sensing reflectances into optical water
  types (OWT), based on class means and covariances of in-situ spectra
- glint and atmospheric correction of MERIS TOA radiances with a chain of
  pretrained neural networks

This package implements the algorithms documented in:

    Moore, T.S., Campbell, J.W. and Dowell, M.D. (2009). A class-based
    approach to characterizing and mapping the uncertainty of the MODIS
    ocean chlorophyll product. Remote Sens. Environ., 113:2424-2430.

    Doerffer, R. and Schiller, H. (2007). The MERIS Case 2 water algorithm.
    Int. J. Remote Sensing, 28:517-535.

Main Classes
------------
OWTClassification
    Optical water type classification of single pixels.
GlintCorrectionPipeline
    Neural-network glint and atmospheric correction of single pixels.

Modules
-------
linalg
    LU decomposition and matrix inversion.
special
    Incomplete gamma function and trapezoidal integration.
auxdata
    Class statistics and their loading.
owt_types
    Optical water type variants.
fuzzy
    Fuzzy class memberships.
neuralnet
    Neural network definitions and evaluation.
rayleigh, gases, tosa
    Top-of-standard-atmosphere reflectance model.
validation
    Land, cloud/ice and TOA range tests.
batch
    Scene-level processing loops.

Example
-------
>>> from correct_watertype.glint_correction import get_chi_sqr_from_largest_diffs
>>> get_chi_sqr_from_largest_diffs([1.0, 2.0], [1.0, 1.0], 1)
0.25
"""

__version__ = "0.0.dev0"

from correct_watertype.classification import ClassificationResult, OWTClassification
from correct_watertype.config import (
    ClassificationConfig,
    GlintCorrectionConfig,
    ReflectanceUnit,
    ValidationConfig,
)
from correct_watertype.glint_correction import GlintCorrectionPipeline, GlintResult
from correct_watertype.owt_types import OWT_TYPES, get_owt_type
from correct_watertype.pixel import PixelSample

__all__ = [
    "OWTClassification",
    "ClassificationResult",
    "GlintCorrectionPipeline",
    "GlintResult",
    "PixelSample",
    "OWT_TYPES",
    "get_owt_type",
    "ClassificationConfig",
    "GlintCorrectionConfig",
    "ValidationConfig",
    "ReflectanceUnit",
    "__version__",
]
