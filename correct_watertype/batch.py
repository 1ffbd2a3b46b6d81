"""
Scene-level processing loops.

Each pixel is processed in isolation: a numerical failure marks that pixel
invalid and processing continues, while configuration errors abort the run.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
from tqdm import tqdm

from correct_watertype.classification import ClassificationResult, OWTClassification
from correct_watertype.constants import FLAG_MASKS, INPUT_INVALID, OUTPUT_BAND_INDEX
from correct_watertype.exceptions import DimensionMismatchError, NumericalError
from correct_watertype.glint_correction import (
    GlintCorrectionPipeline,
    GlintResult,
    expand_to_band_layout,
)
from correct_watertype.pixel import PixelSample

logger = logging.getLogger(__name__)


@dataclass
class ProcessingStatistics:
    """Counters of a processing run"""
    processed: int = 0
    invalid: int = 0
    failed: int = 0
    flag_counts: Counter = field(default_factory=Counter)

    def add_flags(self, flags: int):
        for name, mask in FLAG_MASKS:
            if flags & mask:
                self.flag_counts[name] += 1

    def log_summary(self, what: str):
        logger.info(
            "%s: %d pixels processed, %d invalid, %d numerical failures",
            what, self.processed, self.invalid, self.failed,
        )
        for name, count in sorted(self.flag_counts.items()):
            logger.info("  %s: %d", name, count)


@dataclass
class ClassificationArrays:
    """
    Stacked classification results of a scene.

    Attributes
    ----------
    memberships, norm_memberships : ndarray
        Shape (n_pixels, n_classes).
    dominant_class : ndarray
        Shape (n_pixels,), int.
    class_sum, norm_class_sum : ndarray
        Shape (n_pixels,).
    """

    memberships: np.ndarray
    norm_memberships: np.ndarray
    dominant_class: np.ndarray
    class_sum: np.ndarray
    norm_class_sum: np.ndarray


def _progress(total: int, desc: str, show: bool):
    return tqdm(total=total, desc=desc, unit="pixel", disable=not show)


def classify_pixels(
    classification: OWTClassification,
    reflectances,
    show_progress: bool = False,
    statistics: Optional[ProcessingStatistics] = None,
) -> ClassificationArrays:
    """
    Classify every pixel of a scene.

    Parameters
    ----------
    classification : OWTClassification
        Configured classification.
    reflectances : array_like
        Reflectances, shape (n_pixels, n_bands).
    show_progress : bool, optional
        Show a tqdm progress bar.
    statistics : ProcessingStatistics, optional
        Counters to update; a new instance is used if None.

    Returns
    -------
    ClassificationArrays

    Raises
    ------
    DimensionMismatchError
        If the band count does not match the water type.
    """
    r = np.atleast_2d(np.asarray(reflectances, dtype=np.float64))
    stats = statistics if statistics is not None else ProcessingStatistics()
    results: List[ClassificationResult] = []
    with _progress(len(r), "Classifying", show_progress) as pbar:
        for sample in r:
            result = classification.classify(sample)
            stats.processed += 1
            if not result.is_valid:
                stats.invalid += 1
            results.append(result)
            pbar.update(1)
    stats.log_summary("Classification")

    n_classes = classification.class_count
    if not results:
        empty = np.empty((0, n_classes))
        return ClassificationArrays(empty, empty.copy(), np.empty(0, dtype=int),
                                    np.empty(0), np.empty(0))
    return ClassificationArrays(
        memberships=np.stack([res.memberships for res in results]),
        norm_memberships=np.stack([res.norm_memberships for res in results]),
        dominant_class=np.array([res.dominant_class for res in results], dtype=int),
        class_sum=np.array([res.class_sum for res in results]),
        norm_class_sum=np.array([res.norm_class_sum for res in results]),
    )


def _broadcast(value: Union[None, float, Sequence[float]], n: int) -> List[Optional[float]]:
    if value is None or np.isscalar(value):
        return [value] * n
    values = list(value)
    if len(values) != n:
        raise DimensionMismatchError(n, len(values), "per-pixel water parameter")
    return values


def correct_pixels(
    pipeline: GlintCorrectionPipeline,
    pixels: Iterable[PixelSample],
    temperature=None,
    salinity=None,
    show_progress: bool = False,
    statistics: Optional[ProcessingStatistics] = None,
) -> List[GlintResult]:
    """
    Run the glint correction over many pixels.

    Parameters
    ----------
    pipeline : GlintCorrectionPipeline
        Configured correction.
    pixels : iterable of PixelSample
        Pixels to correct.
    temperature, salinity : float or sequence of float, optional
        Per-scene or per-pixel water parameters. None or NaN selects the
        configured averages.
    show_progress : bool, optional
        Show a tqdm progress bar.
    statistics : ProcessingStatistics, optional
        Counters to update.

    Returns
    -------
    list of GlintResult
        One result per pixel. Pixels raising a :class:`NumericalError` get
        :meth:`GlintResult.invalid`.
    """
    pixels = list(pixels)
    n = len(pixels)
    temperatures = _broadcast(temperature, n)
    salinities = _broadcast(salinity, n)
    stats = statistics if statistics is not None else ProcessingStatistics()

    results = []
    with _progress(n, "Correcting", show_progress) as pbar:
        for pixel, t, s in zip(pixels, temperatures, salinities):
            try:
                result = pipeline.perform(pixel, temperature=t, salinity=s)
            except NumericalError as e:
                logger.debug("Pixel x=%d failed: %s", pixel.pixel_x, e)
                stats.failed += 1
                result = GlintResult.invalid()
            stats.processed += 1
            if result.flags & INPUT_INVALID:
                stats.invalid += 1
            stats.add_flags(result.flags)
            results.append(result)
            pbar.update(1)
    stats.log_summary("Glint correction")
    return results


@dataclass
class GlintArrays:
    """
    Stacked glint correction results in the 13 slot product band layout.

    The slot of the retired 761 nm band holds NaN.
    """

    reflec: np.ndarray
    norm_reflec: np.ndarray
    tosa_reflec: np.ndarray
    auto_tosa_reflec: np.ndarray
    tosa_quality_indicator: np.ndarray
    tau550: np.ndarray
    angstrom: np.ndarray
    flags: np.ndarray


_SPECTRAL_FIELDS = ("reflec", "norm_reflec", "tosa_reflec", "auto_tosa_reflec")
_SCALAR_FIELDS = ("tosa_quality_indicator", "tau550", "angstrom")


def stack_glint_results(results: Sequence[GlintResult]) -> GlintArrays:
    """
    Stack per-pixel results into arrays for writing a product.

    Parameters
    ----------
    results : sequence of GlintResult
        Output of :func:`correct_pixels`.

    Returns
    -------
    GlintArrays
        Spectral arrays of shape (n_pixels, 13), scalars of shape (n_pixels,).
    """
    n_slots = len(OUTPUT_BAND_INDEX)
    spectral = {
        name: np.array([expand_to_band_layout(getattr(r, name)) for r in results]).reshape(-1, n_slots)
        for name in _SPECTRAL_FIELDS
    }
    scalars = {
        name: np.array([getattr(r, name) for r in results], dtype=np.float64)
        for name in _SCALAR_FIELDS
    }
    flags = np.array([r.flags for r in results], dtype=np.int32)
    return GlintArrays(flags=flags, **spectral, **scalars)
