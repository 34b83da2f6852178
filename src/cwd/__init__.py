"""
cwd: 累积水分亏缺分析工具包
Cumulative Water Deficit Analysis Toolkit

从逐日水量平衡（入渗减蒸散）计算累积水分亏缺 (CWD)，并识别亏缺事件。
Computes the cumulative water deficit (CWD) from a daily water balance
(infiltration minus evapotranspiration) and identifies deficit events.

主要功能 / Main Features:
--------------------------
1. CWD 与事件识别 / CWD and event detection
   - 比例回落重置 / Fractional drop reset
   - 耗尽终止 / Exhaustion threshold
   - 水文年日历重置 / Hydrological-year calendar reset

2. 潜在蒸散 / Potential evapotranspiration
   - Priestley-Taylor (SPLASH v1.0)
   - 潜热通量转换 / Latent heat flux conversion

3. 积雪模拟 / Snow simulation (Orth et al., 2013)

使用示例 / Usage Example:
--------------------------
>>> import pandas as pd
>>> from cwd import cwd
>>> df = pd.DataFrame({
...     'time': pd.date_range('2001-06-01', periods=7, freq='D'),
...     'wbal': [-5, -3, 2, -10, 15, -1, -1],
... })
>>> out = cwd(df, thresh_drop=0.5)
>>> out.inst[['iinst', 'date_start', 'date_end', 'deficit']]

依赖项 / Dependencies:
---------------------
- numpy >= 1.21.0
- pandas >= 1.3.0
- matplotlib >= 3.4.0
- seaborn >= 0.11.0
"""

__version__ = "0.1.0"
__license__ = "MIT"

# CWD 与事件 / CWD and events
from .deficit import (
    CwdResult,
    DeficitParams,
    DeficitState,
    cwd,
    prepare_input,
    scan_deficit,
    step_deficit,
    validate_params,
)
from .events import event_statistics, summarize_events

# 错误类型 / Errors
from .exceptions import (
    CwdError,
    InvalidConfigurationError,
    MalformedInputError,
    UndefinedValueError,
)

# 潜在蒸散 / Potential evapotranspiration
from .pet import (
    calc_density_h2o,
    calc_enthalpy_vap,
    calc_patm,
    calc_psychro,
    calc_sat_slope,
    convert_et,
    pet,
)

# 积雪 / Snow
from .snow import simulate_snow

# 输入输出 / IO
from .io_utils import prepare_water_balance, read_fluxnet_csv

__all__ = [
    "cwd",
    "CwdResult",
    "DeficitParams",
    "DeficitState",
    "prepare_input",
    "scan_deficit",
    "step_deficit",
    "validate_params",
    "summarize_events",
    "event_statistics",
    "CwdError",
    "InvalidConfigurationError",
    "MalformedInputError",
    "UndefinedValueError",
    "calc_density_h2o",
    "calc_enthalpy_vap",
    "calc_patm",
    "calc_psychro",
    "calc_sat_slope",
    "convert_et",
    "pet",
    "simulate_snow",
    "prepare_water_balance",
    "read_fluxnet_csv",
]
