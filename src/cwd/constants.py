"""
Physical constants and default parameters.

The SPLASH constants table follows Davis et al. (2017); values are shared by
every function in ``cwd.pet`` and must not be modified at runtime.
"""

from types import MappingProxyType
from typing import Final, Mapping

# ============================================================================
# 物理常数 (Physical Constants, SPLASH v1.0)
# ============================================================================

SPLASH_CONSTANTS: Final[Mapping[str, float]] = MappingProxyType({
    'kTkelvin': 273.15,    # freezing point in K (= 0 deg C)
    'kTo': 298.15,         # base temperature, K (from P-model)
    'kR': 8.31446262,      # universal gas constant, J/mol/K (Allen, 1973)
    'kMv': 18.02,          # molecular weight of water vapor, g/mol (Tsilingiris, 2008)
    'kMa': 28.963,         # molecular weight of dry air, g/mol (Tsilingiris, 2008)
    'kfFEC': 2.04,         # from flux to energy conversion, umol/J (Meek et al., 1984)
    'kPo': 101325.0,       # standard atmosphere, Pa (Allen, 1973)
    'kL': 0.0065,          # temperature lapse rate, K/m (Cavcar, 2000)
    'kG': 9.80665,         # gravitational acceleration, m/s^2 (Allen, 1973)
    'k_karman': 0.41,      # Von Karman constant (bigleaf)
    'eps': 9.999e-6,       # numerical imprecision allowed in mass conservation tests
    'cp': 1004.834,        # specific heat of air at constant pressure, J/K/kg (bigleaf)
    'Rd': 287.0586,        # gas constant of dry air, J/kg/K (Foken 2008, p. 245)
    'alpha': 1.26,         # Priestley-Taylor coefficient, Eq. (22) in Davis et al.
})

SECONDS_PER_DAY: Final[int] = 60 * 60 * 24

# ============================================================================
# 累积水分亏缺参数 (Cumulative Water Deficit Parameters)
# ============================================================================

DEFAULT_THRESH_TERMINATE: Final[float] = 0.0  # mm, deficit at which an event is exhausted
DEFAULT_THRESH_DROP: Final[float] = 0.1       # fraction of the event peak removed by rain

# 日历参数 (Calendar Parameters)
MIN_DOY: Final[int] = 1
MAX_DOY: Final[int] = 366

# 默认列名 (Default Column Names)
DEFAULT_VARNAME_WBAL: Final[str] = 'wbal'
DEFAULT_VARNAME_DATE: Final[str] = 'time'

# ============================================================================
# 积雪模型参数 (Snow Model Parameters, Orth et al. 2013)
# ============================================================================

DEFAULT_SNOW_TEMP_THRESHOLD: Final[float] = 1.0  # deg C, melt starts above this
DEFAULT_MAX_MELT_RATE: Final[float] = 1.0        # mm d-1 K-1
DEFAULT_SPINUP_DAYS: Final[int] = 365

# FLUXNET 缺测值 (FLUXNET missing value flag)
FLUXNET_MISSING_VALUE: Final[float] = -9999.0
