"""
Class statistics of the optical water types.

Each optical water type is described by a mean reflectance spectrum and a
covariance matrix per class. The classifier needs the spectral means and the
*inverted* covariance matrices restricted to the wavelengths it is configured
for. This module holds that data (:class:`Auxdata`), the pure wavelength
matching and reduction steps, and a small loader for statistics stored as
NetCDF4/HDF5 files (:class:`AuxdataSource`).

The covariance matrices are always reduced to the wavelength subset first
and inverted afterwards. Inverting the full matrix and reducing the inverse
gives a different (wrong) result.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import xarray as xr

from correct_watertype.constants import HYPERSPECTRAL_MAX_DISTANCE
from correct_watertype.exceptions import (
    AuxdataError,
    ConfigurationError,
    WavelengthNotFoundError,
)
from correct_watertype.linalg import invert_stack

logger = logging.getLogger(__name__)


def _read_only(values) -> np.ndarray:
    a = np.array(values, dtype=np.float64)
    a.setflags(write=False)
    return a


@dataclass(frozen=True)
class Auxdata:
    """
    Spectral means and inverted covariance matrices of the water type classes.

    Attributes
    ----------
    spectral_means : ndarray
        Mean reflectance per wavelength and class, shape
        (n_wavelengths, n_classes).
    inv_covariance : ndarray
        Inverted covariance matrix per class, shape
        (n_classes, n_wavelengths, n_wavelengths).

    Notes
    -----
    Both arrays are copied and marked read-only on construction, so one
    instance can be shared by any number of concurrent classifications.
    """

    spectral_means: np.ndarray
    inv_covariance: np.ndarray

    def __post_init__(self):
        means = _read_only(self.spectral_means)
        inv_cov = _read_only(self.inv_covariance)
        if means.ndim != 2 or means.size == 0:
            raise ConfigurationError(
                "Spectral means must be a non-empty 2-D array",
                {"shape": means.shape},
            )
        if inv_cov.ndim != 3 or inv_cov.shape[1] != inv_cov.shape[2]:
            raise ConfigurationError(
                "Inverted covariance must be a stack of square matrices",
                {"shape": inv_cov.shape},
            )
        n_wl, n_classes = means.shape
        if inv_cov.shape != (n_classes, n_wl, n_wl):
            raise ConfigurationError(
                "Spectral means and covariance matrices do not agree",
                {"means": means.shape, "inv_covariance": inv_cov.shape},
            )
        object.__setattr__(self, "spectral_means", means)
        object.__setattr__(self, "inv_covariance", inv_cov)

    @property
    def class_count(self) -> int:
        """Number of classes."""
        return self.spectral_means.shape[1]

    @property
    def band_count(self) -> int:
        """Number of wavelengths."""
        return self.spectral_means.shape[0]

    @classmethod
    def from_statistics(
        cls,
        means,
        covariances,
        wavelength_indices: Optional[Sequence[int]] = None,
        needs_inversion: bool = True,
    ) -> "Auxdata":
        """
        Build the auxiliary data from raw class statistics.

        Parameters
        ----------
        means : array_like
            Spectral means, shape (n_all_wavelengths, n_classes).
        covariances : array_like
            Covariance (or already inverted covariance) matrices, shape
            (n_classes, n_all_wavelengths, n_all_wavelengths).
        wavelength_indices : sequence of int, optional
            Wavelengths to keep. All wavelengths are kept if None.
        needs_inversion : bool, optional
            Whether ``covariances`` still has to be inverted.

        Returns
        -------
        Auxdata

        Raises
        ------
        SingularMatrixError
            If a reduced covariance matrix cannot be inverted.
        """
        means = np.asarray(means, dtype=np.float64)
        covariances = np.asarray(covariances, dtype=np.float64)
        if wavelength_indices is not None:
            means = reduce_spectral_means(means, wavelength_indices)
            covariances = reduce_covariance_matrices(covariances, wavelength_indices)
        if needs_inversion:
            covariances = invert_stack(covariances)
        return cls(means, covariances)


def find_wavelength_indices(
    use_wavelengths: Sequence[float],
    all_wavelengths: Sequence[float],
    max_distance: float = HYPERSPECTRAL_MAX_DISTANCE,
) -> np.ndarray:
    """
    Find the index of the nearest grid wavelength for each wavelength.

    Parameters
    ----------
    use_wavelengths : sequence of float
        Wavelengths to look up [nm].
    all_wavelengths : sequence of float
        Ascending wavelength grid of the statistics [nm].
    max_distance : float, optional
        Maximum accepted distance [nm] (default 1.5).

    Returns
    -------
    ndarray of int
        One grid index per requested wavelength.

    Raises
    ------
    WavelengthNotFoundError
        If no grid wavelength lies within ``max_distance``.

    Notes
    -----
    The grid must be sorted; the scan stops as soon as the distance starts
    growing. On a tie the later grid point wins.

    Examples
    --------
    >>> grid = [400.0, 403.0, 406.0]
    >>> find_wavelength_indices([402.9], grid).tolist()
    [1]
    """
    indices = []
    for wavelength in use_wavelengths:
        best_index = -1
        last_delta = np.inf
        for i, grid_wavelength in enumerate(all_wavelengths):
            delta = abs(wavelength - grid_wavelength)
            if delta <= max_distance and delta <= last_delta:
                best_index = i
            elif delta > last_delta:
                break
            last_delta = delta
        if best_index == -1:
            raise WavelengthNotFoundError(wavelength, max_distance)
        indices.append(best_index)
    return np.array(indices, dtype=int)


def find_exact_wavelength_indices(
    use_wavelengths: Sequence[float],
    all_wavelengths: Sequence[float],
) -> np.ndarray:
    """
    Indices of the wavelengths that occur exactly in ``all_wavelengths``.

    Raises
    ------
    WavelengthNotFoundError
        If a wavelength is not part of the list.
    """
    all_wavelengths = list(all_wavelengths)
    indices = []
    for wavelength in use_wavelengths:
        try:
            indices.append(all_wavelengths.index(wavelength))
        except ValueError:
            raise WavelengthNotFoundError(wavelength, 0.0) from None
    return np.array(indices, dtype=int)


def reduce_spectral_means(means, indices: Sequence[int]) -> np.ndarray:
    """Select the wavelength rows ``indices`` of the spectral means."""
    means = np.asarray(means, dtype=np.float64)
    return means[np.asarray(indices, dtype=int)]


def reduce_covariance_matrices(matrices, indices: Sequence[int]) -> np.ndarray:
    """
    Restrict every class covariance matrix to the wavelengths ``indices``.

    ``result[i, j, k] = matrices[i, indices[j], indices[k]]``.
    """
    matrices = np.asarray(matrices, dtype=np.float64)
    idx = np.asarray(indices, dtype=int)
    return matrices[:, idx[:, None], idx[None, :]]


@dataclass(frozen=True)
class AuxdataSource:
    """
    Location of the class statistics of one optical water type.

    Attributes
    ----------
    means_path : str
        File holding the spectral means.
    means_variable : str
        Name of the spectral means variable.
    covariance_path : str
        File holding the covariance matrices.
    covariance_variables : tuple of str
        Candidate names of the covariance variable; the first one present
        in the file is used.
    wavelength_grid : tuple of float, optional
        Wavelengths of the file statistics. If None no reduction happens.
    exact_match : bool
        Match wavelengths exactly instead of by nearest neighbour.
    max_distance : float
        Tolerance of the nearest-neighbour matching [nm].
    needs_inversion : bool
        Whether the stored matrices are covariances (True) or already
        inverted (False).
    """

    means_path: str
    means_variable: str
    covariance_path: str
    covariance_variables: Tuple[str, ...]
    wavelength_grid: Optional[Tuple[float, ...]] = None
    exact_match: bool = False
    max_distance: float = HYPERSPECTRAL_MAX_DISTANCE
    needs_inversion: bool = True
    engine: str = field(default="h5netcdf", compare=False)

    def wavelength_indices(self, wavelengths: Sequence[float]) -> Optional[np.ndarray]:
        """Indices of ``wavelengths`` on the file grid, None if not reduced."""
        if self.wavelength_grid is None:
            return None
        if self.exact_match:
            return find_exact_wavelength_indices(wavelengths, self.wavelength_grid)
        return find_wavelength_indices(
            wavelengths, self.wavelength_grid, self.max_distance
        )

    def _read_variable(self, path: str, names: Sequence[str]) -> np.ndarray:
        try:
            with xr.open_dataset(path, engine=self.engine) as ds:
                for name in names:
                    if name in ds.variables:
                        return ds[name].values.astype(np.float64)
        except (OSError, ValueError) as e:
            raise AuxdataError(
                "Could not load auxiliary data", {"path": path, "error": str(e)}
            ) from e
        raise AuxdataError(
            f"Variable with name '{names[0]}' could not be found",
            {"path": path, "candidates": list(names)},
        )

    def load(self, wavelengths: Sequence[float], root: str = "") -> Auxdata:
        """
        Load and prepare the statistics for the given wavelengths.

        Parameters
        ----------
        wavelengths : sequence of float
            Wavelengths the classifier uses [nm].
        root : str, optional
            Directory prepended to the relative file paths.

        Returns
        -------
        Auxdata

        Raises
        ------
        AuxdataError
            If a file or a variable cannot be read.
        WavelengthNotFoundError
            If a wavelength is not part of the file grid.
        """
        indices = self.wavelength_indices(wavelengths)
        means_path = root + self.means_path
        covariance_path = root + self.covariance_path
        means = self._read_variable(means_path, (self.means_variable,))
        covariances = self._read_variable(covariance_path, self.covariance_variables)
        logger.info(
            "Loaded class statistics: means %s from %s, covariances %s from %s",
            means.shape, means_path, covariances.shape, covariance_path,
        )
        return Auxdata.from_statistics(
            means, covariances, indices, needs_inversion=self.needs_inversion
        )
