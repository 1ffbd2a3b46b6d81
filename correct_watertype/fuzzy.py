"""
Fuzzy class memberships of a reflectance spectrum.

For every class the squared Mahalanobis distance of the spectrum to the
class mean is computed with the inverted class covariance matrix. Under the
assumption of normally distributed class spectra this distance follows a
chi-square distribution with as many degrees of freedom as there are bands;
the membership is the probability of observing a larger distance.

References
----------
.. [1] Moore, T.S., Campbell, J.W. and Feng, H. (2001). A fuzzy logic
       classification scheme for selecting and blending satellite ocean
       color algorithms. IEEE Trans. Geosci. Remote Sens., 39:1764-1776.
.. [2] Moore, T.S., Dowell, M.D., Bradt, S. and Verdu, A.R. (2014). An
       optical water type framework for selecting and blending retrievals
       from bio-optical algorithms in lakes and coastal waters. Remote Sens.
       Environ., 143:97-111.
"""

import numpy as np

from correct_watertype.auxdata import Auxdata
from correct_watertype.exceptions import (
    ClassificationError,
    ConvergenceError,
    DimensionMismatchError,
)
from correct_watertype.special import gamma_continued_fraction, gamma_series


def membership_from_distance(z_square: float, band_count: int) -> float:
    """
    Chi-square membership for a squared Mahalanobis distance.

    Parameters
    ----------
    z_square : float
        Squared Mahalanobis distance.
    band_count : int
        Number of bands (degrees of freedom).

    Returns
    -------
    float
        Membership in [0, 1].

    Notes
    -----
    Below ``chi + 1`` the membership is ``1 - P(chi, x)`` from the series,
    above it the continued fraction value ``Q(chi, x)`` is used directly,
    with ``x = z_square / 2`` and ``chi = band_count / 2``.
    """
    x = z_square / 2.0
    chi_square = band_count / 2.0
    if x <= chi_square + 1.0:
        return 1.0 - gamma_series(chi_square, x)
    return gamma_continued_fraction(chi_square, x)


def compute_memberships(reflectances, auxdata: Auxdata) -> np.ndarray:
    """
    Membership of a spectrum to every class of the auxiliary data.

    Parameters
    ----------
    reflectances : array_like
        Subsurface remote sensing reflectances, one per auxdata wavelength.
    auxdata : Auxdata
        Class statistics.

    Returns
    -------
    ndarray
        One membership per class, in class order. The memberships are not
        normalized.

    Raises
    ------
    DimensionMismatchError
        If the spectrum length differs from the auxdata band count.
    ClassificationError
        If a membership cannot be computed (non-convergence of the
        incomplete gamma expansions, negative distance).
    """
    r = np.asarray(reflectances, dtype=np.float64)
    band_count = auxdata.band_count
    if r.ndim != 1 or r.shape[0] != band_count:
        raise DimensionMismatchError(band_count, r.size, "reflectance")

    memberships = np.empty(auxdata.class_count)
    for i in range(auxdata.class_count):
        y = r - auxdata.spectral_means[:, i]
        b = auxdata.inv_covariance[i] @ y
        z_square = float(y @ b)
        try:
            memberships[i] = membership_from_distance(z_square, band_count)
        except (ConvergenceError, ValueError) as e:
            raise ClassificationError(
                "Could not compute class membership",
                {"class": i, "z_square": z_square, "cause": str(e)},
            ) from e
    return memberships


class FuzzyClassifier:
    """
    Fuzzy classifier bound to one set of class statistics.

    Parameters
    ----------
    auxdata : Auxdata
        Class statistics. Shared read-only, the classifier keeps no other
        state.

    Examples
    --------
    >>> aux = Auxdata(np.zeros((2, 1)), np.eye(2)[None, :, :])
    >>> FuzzyClassifier(aux).compute_memberships([0.0, 0.0]).tolist()
    [1.0]
    """

    def __init__(self, auxdata: Auxdata):
        self.auxdata = auxdata

    @property
    def class_count(self) -> int:
        return self.auxdata.class_count

    @property
    def band_count(self) -> int:
        return self.auxdata.band_count

    def compute_memberships(self, reflectances) -> np.ndarray:
        """See :func:`compute_memberships`."""
        return compute_memberships(reflectances, self.auxdata)
