"""
Daily snow accumulation and melt

Simple degree-day snow pool following Orth et al. (2013): snowfall feeds
the pool, and above a temperature threshold the pool melts at a rate
proportional to the temperature excess. Rain plus melt is the liquid water
reaching the soil, which feeds the water balance used by ``cwd``.
"""

import logging

import numpy as np
import pandas as pd

from .constants import (
    DEFAULT_MAX_MELT_RATE,
    DEFAULT_SNOW_TEMP_THRESHOLD,
    DEFAULT_SPINUP_DAYS,
)
from .exceptions import MalformedInputError, UndefinedValueError

logger = logging.getLogger(__name__)


def snow_melt(snow_pool, temp, temp_threshold=DEFAULT_SNOW_TEMP_THRESHOLD,
              maxmeltrate=DEFAULT_MAX_MELT_RATE):
    """Melt (mm d-1) for one day, never more than the pool holds."""
    if snow_pool > 0.0 and temp > temp_threshold:
        return min(snow_pool, maxmeltrate * (temp - temp_threshold))
    return 0.0


def simulate_snow(df, varnam_temp, varnam_prec, varnam_snow,
                  temp_threshold=DEFAULT_SNOW_TEMP_THRESHOLD,
                  maxmeltrate=DEFAULT_MAX_MELT_RATE,
                  spinup_days=DEFAULT_SPINUP_DAYS):
    """
    Simulate snow mass accumulation and melt.

    The pool is spun up over the first ``spinup_days`` days of the forcing
    (or the whole series if shorter), then run forward over the full series.

    Parameters
    ----------
    df : pd.DataFrame
        Daily forcing
    varnam_temp : str
        Column with air temperature (°C)
    varnam_prec : str
        Column with rain (mm d-1)
    varnam_snow : str
        Column with snowfall (snow water equivalents, mm d-1)
    temp_threshold : float, default=1.0
        Temperature above which snow melts (°C)
    maxmeltrate : float, default=1.0
        Melt per degree above the threshold (mm d-1 K-1)
    spinup_days : int, default=365
        Length of the spin-up period (days)

    Returns
    -------
    pd.DataFrame
        Copy of ``df`` with ``liquid_to_soil`` (rain plus melt, mm d-1) and
        ``snow_pool`` (snow mass in water equivalents, mm)

    Examples
    --------
    >>> forcing = pd.DataFrame({'temp': [-5.0, 3.0], 'rain': [0.0, 2.0],
    ...                         'snow': [4.0, 0.0]})
    >>> out = simulate_snow(forcing, 'temp', 'rain', 'snow', spinup_days=0)
    >>> out['liquid_to_soil'].tolist()
    [0.0, 4.0]
    """
    for column in (varnam_temp, varnam_prec, varnam_snow):
        if column not in df.columns:
            raise MalformedInputError(
                f"Missing required column '{column}'", column=column
            )
    if spinup_days < 0:
        raise ValueError(f"spinup_days must be >= 0, got {spinup_days}")

    temp = df[varnam_temp].to_numpy(dtype=float)
    prec = df[varnam_prec].to_numpy(dtype=float)
    snow = df[varnam_snow].to_numpy(dtype=float)

    for column, values in ((varnam_temp, temp), (varnam_prec, prec), (varnam_snow, snow)):
        undefined = np.flatnonzero(np.isnan(values))
        if undefined.size > 0:
            raise UndefinedValueError(
                "Snow forcing contains NaN values, please clean data first",
                row=int(undefined[0]), column=column,
            )

    n_days = len(prec)
    snow_pool = 0.0

    # Spin-up
    for doy in range(min(spinup_days, n_days)):
        melt = snow_melt(snow_pool, temp[doy], temp_threshold, maxmeltrate)
        snow_pool = snow_pool + snow[doy] - melt

    logger.debug("Snow pool after spin-up: %.2f mm", snow_pool)

    liquid_to_soil = np.empty(n_days)
    snow_pool_out = np.empty(n_days)

    # Transient forward
    for doy in range(n_days):
        melt = snow_melt(snow_pool, temp[doy], temp_threshold, maxmeltrate)
        snow_pool = snow_pool + snow[doy] - melt
        liquid_to_soil[doy] = prec[doy] + melt
        snow_pool_out[doy] = snow_pool

    out = df.copy()
    out['liquid_to_soil'] = liquid_to_soil
    out['snow_pool'] = snow_pool_out

    return out
