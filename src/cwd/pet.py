"""
Priestley-Taylor potential evapotranspiration and related conversions

Implements the SPLASH v1.0 formulation (Davis et al., 2017) of the
Priestley & Taylor (1972) equation, plus the closed-form helpers it needs.
All functions accept scalars or array-likes and broadcast like numpy.
"""

import numpy as np
import pandas as pd

from .constants import SECONDS_PER_DAY, SPLASH_CONSTANTS


def calc_enthalpy_vap(tc):
    """
    Enthalpy of vaporisation (J kg-1).

    Converts a mass (flux) of water into an energy (flux).

    Parameters
    ----------
    tc : float or array-like
        Air temperature (°C)

    Returns
    -------
    float or np.ndarray

    References
    ----------
    Henderson-Sellers, B. (1984), Eq. 8.
    """
    tc = np.asarray(tc, dtype=float)
    return 1.91846e6 * ((tc + 273.15) / (tc + 273.15 - 33.91)) ** 2


def calc_density_h2o(tc, patm):
    """
    Density of water (kg m-3) at a given temperature and pressure.

    Parameters
    ----------
    tc : float or array-like
        Air temperature (°C)
    patm : float or array-like
        Atmospheric pressure (Pa)

    Returns
    -------
    float or np.ndarray

    References
    ----------
    Chen, C. T., Fine, R. A., & Millero, F. J. (1977).
    """
    tc = np.asarray(tc, dtype=float)
    patm = np.asarray(patm, dtype=float)

    # Density at 1 atm
    po = (0.99983952
          + 6.788260e-5 * tc
          - 9.08659e-6 * tc ** 2
          + 1.022130e-7 * tc ** 3
          - 1.35439e-9 * tc ** 4
          + 1.471150e-11 * tc ** 5
          - 1.11663e-13 * tc ** 6
          + 5.044070e-16 * tc ** 7
          - 1.00659e-18 * tc ** 8)

    # Bulk modulus at 1 atm
    ko = (19652.17
          + 148.1830 * tc
          - 2.29995 * tc ** 2
          + 0.01281 * tc ** 3
          - 4.91564e-5 * tc ** 4
          + 1.035530e-7 * tc ** 5)

    # Temperature dependent coefficients
    ca = (3.26138
          + 5.223e-4 * tc
          + 1.324e-4 * tc ** 2
          - 7.655e-7 * tc ** 3
          + 8.584e-10 * tc ** 4)

    cb = (7.2061e-5
          - 5.8948e-6 * tc
          + 8.69900e-8 * tc ** 2
          - 1.0100e-9 * tc ** 3
          + 4.3220e-12 * tc ** 4)

    pbar = 1.0e-5 * patm  # Pa -> bar

    bulk = ko + ca * pbar + cb * pbar ** 2
    return 1000.0 * po * bulk / (bulk - pbar)


def calc_sat_slope(tc):
    """
    Slope of the saturation vapour pressure curve (Pa K-1).

    Allen et al. (1998), Eq. 13.
    """
    tc = np.asarray(tc, dtype=float)
    return (17.269 * 237.3 * 610.78
            * np.exp(tc * 17.269 / (tc + 237.3)) / (tc + 237.3) ** 2)


def calc_psychro(tc, patm, constants=SPLASH_CONSTANTS):
    """
    Psychrometric constant (Pa K-1) for a given temperature and pressure.

    The specific heat of moist air follows Tsilingiris (2008), Eq. 47, with
    temperature clipped to [0, 100] °C; the psychrometric constant follows
    Allen et al. (1998), Eq. 8.

    Parameters
    ----------
    tc : float or array-like
        Air temperature (°C)
    patm : float or array-like
        Atmospheric pressure (Pa)
    constants : mapping
        Physical constants table (needs ``kMa`` and ``kMv``)
    """
    tc = np.asarray(tc, dtype=float)
    patm = np.asarray(patm, dtype=float)

    my_tc = np.clip(tc, 0.0, 100.0)

    cp = 1.0e3 * (1.0045714270
                  + 2.050632750e-3 * my_tc
                  - 1.631537093e-4 * my_tc ** 2
                  + 6.212300300e-6 * my_tc ** 3
                  - 8.830478888e-8 * my_tc ** 4
                  + 5.071307038e-10 * my_tc ** 5)

    lv = calc_enthalpy_vap(tc)

    return cp * constants['kMa'] * patm / (constants['kMv'] * lv)


def calc_patm(elv, constants=SPLASH_CONSTANTS):
    """
    Atmospheric pressure (Pa) at a given elevation, standard atmosphere.

    Parameters
    ----------
    elv : float or array-like
        Elevation above sea level (m)

    Examples
    --------
    >>> round(float(calc_patm(0.0)))
    101325
    """
    elv = np.asarray(elv, dtype=float)
    c = constants
    exponent = c['kG'] * c['kMa'] * 1.0e-3 / (c['kR'] * c['kL'])
    return c['kPo'] * (1.0 - c['kL'] * elv / c['kTo']) ** exponent


def pet(netrad, tc, patm, return_df=False, constants=SPLASH_CONSTANTS):
    """
    Priestley-Taylor potential evapotranspiration.

    Parameters
    ----------
    netrad : float or array-like
        Net radiation (W m-2)
    tc : float or array-like
        Air temperature (°C)
    patm : float or array-like
        Atmospheric pressure (Pa)
    return_df : bool, default=False
        Return a one-column DataFrame (``pet``) instead of an array
    constants : mapping
        Physical constants table

    Returns
    -------
    pet : float, np.ndarray or pd.DataFrame
        Potential evapotranspiration (mm s-1)

    Examples
    --------
    >>> flux = pet(netrad=150.0, tc=20.0, patm=101325.0)
    >>> print(f"PET = {float(flux) * 86400:.2f} mm/day")

    References
    ----------
    Davis, T. W. et al. (2017). Simple process-led algorithms for simulating
    habitats (SPLASH v.1.0). Geoscientific Model Development, 10(2), 689-708.

    Priestley, C. H. B., & Taylor, R. J. (1972). Monthly Weather Review,
    100(2), 81-92.
    """
    netrad = np.asarray(netrad, dtype=float)

    sat_slope = calc_sat_slope(tc)
    lv = calc_enthalpy_vap(tc)
    pw = calc_density_h2o(tc, patm)
    gamma = calc_psychro(tc, patm, constants=constants)

    # m3 J-1
    econ = sat_slope / (lv * pw * (sat_slope + gamma))

    # Equilibrium evapotranspiration (mm s-1)
    eet = netrad * econ * 1000.0

    result = constants['alpha'] * eet

    if return_df:
        return pd.DataFrame({'pet': np.atleast_1d(result)})
    return result


def convert_et(le, tc, patm):
    """
    Convert latent heat flux (W m-2) to evapotranspiration (mm d-1).

    Parameters
    ----------
    le : float or array-like
        Latent heat flux (W m-2)
    tc : float or array-like
        Air temperature (°C)
    patm : float or array-like
        Atmospheric pressure (Pa)
    """
    le = np.asarray(le, dtype=float)
    return 1000.0 * SECONDS_PER_DAY * le / (calc_enthalpy_vap(tc) * calc_density_h2o(tc, patm))


__all__ = [
    'calc_enthalpy_vap',
    'calc_density_h2o',
    'calc_sat_slope',
    'calc_psychro',
    'calc_patm',
    'pet',
    'convert_et',
]
