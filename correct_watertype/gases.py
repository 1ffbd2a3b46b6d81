"""
Gaseous absorption of the TOSA model.

This module implements:

- Ozone transmittance of the real atmosphere and of the correction layer
  from per-band absorption coefficients
- The empirical water vapour correction of the 708 nm band from the ratio of
  the 900 nm and 885 nm TOA reflectances

References
----------
.. [1] Doerffer, R. (2008). Algorithm Theoretical Basis Document (ATBD)
       for the MERIS Case 2 water algorithm. GKSS Research Center.
"""

import numpy as np
from typing import Sequence, Union

from correct_watertype.constants import (
    H2O_COR_POLY,
    OZONE_ABSORPTION,
    WATER_VAPOUR_REFERENCE_INDICES,
)


def ozone_transmittance(
    ozone_du: float,
    cos_zenith: float,
    absorption: Sequence[float] = OZONE_ABSORPTION,
) -> np.ndarray:
    """
    Direct ozone transmittance along one path.

    Parameters
    ----------
    ozone_du : float
        Ozone column in Dobson Units.
    cos_zenith : float
        Cosine of the solar or viewing zenith angle.
    absorption : sequence of float, optional
        Ozone absorption coefficient per band [1/(1000 DU)].

    Returns
    -------
    ndarray
        Transmittance per band.

    Notes
    -----
    .. math::

        t_{O_3} = \\exp\\left(-\\frac{k_{O_3} [O_3] / 1000}{\\cos\\theta}\\right)

    Examples
    --------
    >>> t = ozone_transmittance(350.0, np.cos(np.deg2rad(30.0)))
    >>> bool(np.all((t > 0) & (t <= 1)))
    True
    """
    k = np.asarray(absorption, dtype=np.float64)
    return np.exp(-k * ozone_du / 1000.0 / cos_zenith)


def water_vapour_ratio(
    toa_radiance: Sequence[float],
    solar_flux: Sequence[float],
) -> float:
    """
    Ratio of the 900 nm to the 885 nm TOA radiance reflectance.

    Parameters
    ----------
    toa_radiance, solar_flux : sequence of float
        The full 15 band L1b vectors.
    """
    i885, i900 = WATER_VAPOUR_REFERENCE_INDICES
    rho_885 = toa_radiance[i885] / solar_flux[i885]
    rho_900 = toa_radiance[i900] / solar_flux[i900]
    return rho_900 / rho_885


def water_vapour_transmittance_708(ratio: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Water vapour transmittance of the 708 nm band.

    Cubic polynomial in the 900/885 nm reflectance ratio.
    """
    c0, c1, c2, c3 = H2O_COR_POLY
    return c0 + c1 * ratio + c2 * ratio**2 + c3 * ratio**3


def correct_water_vapour(
    reflectance_708: float,
    toa_radiance: Sequence[float],
    solar_flux: Sequence[float],
) -> float:
    """Correct the 708 nm TOSA reflectance for water vapour absorption."""
    ratio = water_vapour_ratio(toa_radiance, solar_flux)
    return reflectance_708 / water_vapour_transmittance_708(ratio)
