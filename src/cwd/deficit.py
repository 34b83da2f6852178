"""
累积水分亏缺模块 (Cumulative Water Deficit Module)

本模块从逐日水量平衡序列（入渗减去蒸散）计算累积水分亏缺 (CWD)，
并将其划分为离散的亏缺事件。
This module computes the cumulative water deficit (CWD) from a daily water
balance series (infiltration minus evapotranspiration) and segments it into
discrete deficit events.

重置规则 (Reset Rules):
-----------------------
1. 比例回落重置 (Fractional drop reset)
   - 降水使 CWD 相对于事件峰值减少 thresh_drop 比例后，CWD 归零，事件结束
   - CWD is set to zero after rain has reduced it by a fraction of the
     maximum CWD attained during the same event

2. 耗尽终止 (Exhaustion)
   - CWD 回落到 thresh_terminate 以下时事件结束
   - The event ends once CWD falls to or below thresh_terminate

3. 日历重置 (Calendar reset)
   - 每年 doy_reset 所在日强制归零，用于对齐水文年
   - CWD is forced to zero on day-of-year doy_reset of every year, used to
     align accumulation with the hydrological year

处理流程 (Workflow):
--------------------
prepare_input -> scan_deficit (step_deficit 逐行折叠 / left fold) ->
summarize_events

参考文献 (References):
----------------------
Stocker, B. D. et al. (2023). Global patterns of water storage in the
rooting zones of vegetation. Nature Geoscience, 16, 250-256.

作者: cwd Development Team
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

from .constants import (
    DEFAULT_THRESH_DROP,
    DEFAULT_THRESH_TERMINATE,
    DEFAULT_VARNAME_DATE,
    DEFAULT_VARNAME_WBAL,
    MAX_DOY,
    MIN_DOY,
)
from .events import summarize_events
from .exceptions import (
    InvalidConfigurationError,
    MalformedInputError,
    UndefinedValueError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# 数据结构 (Data Structures)
# ============================================================================

@dataclass(frozen=True)
class DeficitParams:
    """
    亏缺扫描参数 (Deficit scan parameters)

    Attributes
    ----------
    thresh_terminate : float
        亏缺回落到该值（含）以下时事件因耗尽而结束，同时也是开启新事件的门槛
        Deficit (mm) at or below which an event is exhausted. A new event
        opens only once the deficit exceeds it.
    thresh_drop : float
        事件峰值被降水消减的比例，达到后 CWD 归零
        Fraction of the event peak that rain must remove to reset CWD to
        zero. ``0`` resets as soon as the deficit is off its running peak,
        ``1`` only when the deficit is fully removed.
    doy_reset : int, optional
        每年强制归零的年积日 (1-366)
        Day-of-year (1-366) on which CWD is forced to zero every year.
    """
    thresh_terminate: float = DEFAULT_THRESH_TERMINATE
    thresh_drop: float = DEFAULT_THRESH_DROP
    doy_reset: Optional[int] = None

    def __post_init__(self):
        validate_params(self.thresh_terminate, self.thresh_drop, self.doy_reset)


@dataclass(frozen=True)
class DeficitState:
    """
    扫描状态 (Scan state carried from one row to the next)

    Attributes
    ----------
    deficit : float
        当前累积亏缺 (current cumulative deficit, mm)
    max_deficit : float
        当前或最近事件的峰值 (peak of the current or most recent event)
    in_event : bool
        是否处于事件中 (whether an event is open)
    event_id : int
        当前或最近关闭事件的编号，0 表示尚无事件
        Id of the current or most recently closed event, 0 before any event
    """
    deficit: float = 0.0
    max_deficit: float = 0.0
    in_event: bool = False
    event_id: int = 0


class CwdResult(NamedTuple):
    """
    ``cwd`` 的输出 (Output of ``cwd``)

    inst : pd.DataFrame
        事件表，每行一个事件 (event table, one row per event)
    df : pd.DataFrame
        逐行注释序列 (annotated series with ``doy``, ``deficit``, ``iinst``)
    """
    inst: pd.DataFrame
    df: pd.DataFrame


# ============================================================================
# 输入验证 (Input Validation)
# ============================================================================

def validate_params(
    thresh_terminate: float,
    thresh_drop: float,
    doy_reset: Optional[int] = None
) -> None:
    """
    检查扫描参数 (Check scan parameters)

    Raises
    ------
    InvalidConfigurationError
        参数超出取值范围 (parameter out of range)
    """
    try:
        thresh_terminate = float(thresh_terminate)
        thresh_drop = float(thresh_drop)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            f"阈值必须为数值 (Thresholds must be numeric): {e}"
        ) from e

    if not np.isfinite(thresh_terminate) or thresh_terminate < 0:
        raise InvalidConfigurationError(
            f"thresh_terminate ({thresh_terminate}) 必须为非负有限数\n"
            f"thresh_terminate ({thresh_terminate}) must be a finite non-negative number"
        )

    if not 0 <= thresh_drop <= 1:
        raise InvalidConfigurationError(
            f"thresh_drop ({thresh_drop}) 必须在 [0, 1] 范围内\n"
            f"thresh_drop ({thresh_drop}) must be in range [0, 1]"
        )

    if doy_reset is not None:
        if isinstance(doy_reset, (bool, np.bool_)) or not isinstance(doy_reset, (int, np.integer)):
            raise InvalidConfigurationError(
                f"doy_reset 必须为整数 (doy_reset must be an integer), got {doy_reset!r}"
            )
        if not MIN_DOY <= doy_reset <= MAX_DOY:
            raise InvalidConfigurationError(
                f"doy_reset ({doy_reset}) 必须在 [{MIN_DOY}, {MAX_DOY}] 范围内\n"
                f"doy_reset ({doy_reset}) must be in range [{MIN_DOY}, {MAX_DOY}]"
            )


def prepare_input(
    df: pd.DataFrame,
    varname_wbal: str = DEFAULT_VARNAME_WBAL,
    varname_date: str = DEFAULT_VARNAME_DATE
) -> pd.DataFrame:
    """
    规范化输入序列 (Normalize the input series)

    返回输入的副本：时间列解析为 datetime，水量平衡列转为浮点，并添加
    ``doy`` 列。不排序，只检查顺序。
    Returns a copy of the input with the time column parsed to datetime, the
    water balance column cast to float and a ``doy`` column added. The rows
    are never sorted, only checked.

    Parameters
    ----------
    df : pd.DataFrame
        含时间列和水量平衡列的表 (table with time and water balance columns)
    varname_wbal : str
        水量平衡列名 (water balance column name)
    varname_date : str
        时间列名 (time column name)

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    MalformedInputError
        缺列、空序列、非数值或时间非严格递增
        Missing columns, empty series, non-numeric balance, or timestamps
        that are not strictly ascending
    """
    # ========================================================================
    # 结构检查 (Structure checks)
    # ========================================================================

    if not isinstance(df, pd.DataFrame):
        raise MalformedInputError(
            f"输入必须为 pandas.DataFrame (Input must be a pandas.DataFrame), "
            f"got {type(df).__name__}"
        )

    for column in (varname_date, varname_wbal):
        if column not in df.columns:
            raise MalformedInputError(
                f"缺少必需列 (Missing required column) '{column}'",
                column=column,
            )

    if len(df) == 0:
        raise MalformedInputError("输入序列为空 (Input series is empty)")

    out = df.copy()

    # ========================================================================
    # 列类型 (Column types)
    # ========================================================================

    try:
        out[varname_wbal] = pd.to_numeric(out[varname_wbal], errors='raise').astype(float)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(
            f"水量平衡列无法转换为数值 (Water balance column is not numeric): {e}",
            column=varname_wbal,
        ) from e

    try:
        dates = pd.to_datetime(out[varname_date])
    except (TypeError, ValueError) as e:
        raise MalformedInputError(
            f"时间列无法解析 (Cannot parse time column): {e}",
            column=varname_date,
        ) from e

    if dates.isna().any():
        row = int(np.flatnonzero(dates.isna().to_numpy())[0])
        raise MalformedInputError(
            "时间列包含缺测值 (Time column contains missing values)",
            row=row, column=varname_date,
        )

    # ========================================================================
    # 顺序检查 (Ordering check)
    # ========================================================================

    steps = dates.diff().iloc[1:]
    not_ascending = np.flatnonzero((steps <= pd.Timedelta(0)).to_numpy())
    if not_ascending.size > 0:
        row = int(not_ascending[0]) + 1
        raise MalformedInputError(
            "时间列必须严格递增，请先排序\n"
            "Time column must be strictly ascending, sort the series first",
            row=row, column=varname_date,
        )

    out[varname_date] = dates
    out['doy'] = dates.dt.dayofyear.to_numpy()

    return out


def _reset_mask(dates: pd.Series, doy_reset: Optional[int]) -> np.ndarray:
    """每年第一个 doy == doy_reset 的行 (First row per year on doy_reset)."""
    if doy_reset is None:
        return np.zeros(len(dates), dtype=bool)

    keys = pd.DataFrame({
        'year': dates.dt.year.to_numpy(),
        'doy': dates.dt.dayofyear.to_numpy(),
    })
    return ((keys['doy'] == doy_reset) & ~keys.duplicated()).to_numpy()


# ============================================================================
# 状态转移 (State Transition)
# ============================================================================

def step_deficit(
    state: DeficitState,
    wbal: float,
    params: DeficitParams,
    reset: bool = False
) -> Tuple[DeficitState, float, Optional[int]]:
    """
    单步状态转移 (Single-row state transition)

    算法 (Algorithm):
    -----------------
    1. 候选亏缺 candidate = max(0, deficit - wbal)
       正水量平衡减少亏缺，负值增加亏缺，亏缺不会小于 0
       A surplus reduces the deficit, a negative balance increases it, and
       the deficit never goes below zero.
    2. 日历重置行：亏缺归零，关闭进行中的事件（该行计入事件）
       Calendar reset row: deficit forced to zero, an open event closes with
       this row as its last row.
    3. 不在事件中且 candidate > thresh_terminate：开启新事件
       Not in an event and candidate above thresh_terminate: open an event.
    4. 事件中：先检查比例回落（归零），再检查耗尽
       In an event: fractional drop is checked first (hard reset to zero),
       then exhaustion (deficit carried as is).

    Parameters
    ----------
    state : DeficitState
        上一行之后的状态 (state after the previous row)
    wbal : float
        本行水量平衡 (water balance of this row, mm)
    params : DeficitParams
        扫描参数 (scan parameters)
    reset : bool, default=False
        本行是否为日历重置行 (whether this row is a calendar reset row)

    Returns
    -------
    new_state : DeficitState
    deficit : float
        本行输出的亏缺 (deficit emitted for this row)
    iinst : int or None
        本行所属事件编号，None 表示不在事件中
        Event id of this row, None outside events

    Raises
    ------
    UndefinedValueError
        wbal 为 NaN 或无穷大 (wbal is NaN or infinite)

    Examples
    --------
    >>> params = DeficitParams(thresh_drop=0.5)
    >>> state, deficit, iinst = step_deficit(DeficitState(), -5.0, params)
    >>> deficit, iinst
    (5.0, 1)
    """
    wbal = float(wbal)
    if not np.isfinite(wbal):
        raise UndefinedValueError(
            f"水量平衡为 NaN 或无穷大 (Water balance is NaN or infinite): {wbal}"
        )

    candidate = max(0.0, state.deficit - wbal)

    # 日历重置 (Calendar reset)
    if reset:
        if state.in_event:
            return (
                DeficitState(0.0, state.max_deficit, False, state.event_id),
                0.0,
                state.event_id,
            )
        return DeficitState(0.0, state.max_deficit, False, state.event_id), 0.0, None

    # 事件外 (Outside an event)
    if not state.in_event:
        if candidate > params.thresh_terminate:
            event_id = state.event_id + 1
            return DeficitState(candidate, candidate, True, event_id), candidate, event_id
        return (
            DeficitState(candidate, state.max_deficit, False, state.event_id),
            candidate,
            None,
        )

    # 事件中 (Inside an event)
    new_peak = candidate > state.max_deficit
    max_deficit = max(state.max_deficit, candidate)

    # 比例回落优先于耗尽 (fractional drop takes precedence over exhaustion)
    if not new_peak and candidate <= max_deficit * (1.0 - params.thresh_drop):
        return DeficitState(0.0, max_deficit, False, state.event_id), 0.0, state.event_id

    if candidate <= params.thresh_terminate:
        return (
            DeficitState(candidate, max_deficit, False, state.event_id),
            candidate,
            state.event_id,
        )

    return DeficitState(candidate, max_deficit, True, state.event_id), candidate, state.event_id


def scan_deficit(
    wbal,
    params: DeficitParams,
    reset_mask=None
) -> Tuple[np.ndarray, pd.Series, DeficitState]:
    """
    沿时间顺序对整个序列做一次折叠 (Left fold over the whole series)

    Parameters
    ----------
    wbal : array-like
        按时间排序的水量平衡 (water balance, time ordered)
    params : DeficitParams
    reset_mask : array-like of bool, optional
        日历重置行 (calendar reset rows); none if omitted

    Returns
    -------
    deficit : np.ndarray
        逐行亏缺 (per-row deficit)
    iinst : pd.Series
        逐行事件编号，Int64 类型，事件外为 <NA>
        Per-row event id as nullable Int64, <NA> outside events
    state : DeficitState
        扫描结束时的状态 (state at the end of the scan)

    Raises
    ------
    UndefinedValueError
        任一行为 NaN 或无穷大，扫描前抛出并给出行号
        Any NaN or infinite row; raised before scanning, with the row position
    """
    wbal = np.asarray(wbal, dtype=float)
    n_rows = len(wbal)

    if reset_mask is None:
        reset_mask = np.zeros(n_rows, dtype=bool)
    else:
        reset_mask = np.asarray(reset_mask, dtype=bool)
        if len(reset_mask) != n_rows:
            raise MalformedInputError(
                f"reset_mask 长度 ({len(reset_mask)}) 与序列长度 ({n_rows}) 不一致\n"
                f"reset_mask length ({len(reset_mask)}) does not match series length ({n_rows})"
            )

    undefined = np.flatnonzero(~np.isfinite(wbal))
    if undefined.size > 0:
        row = int(undefined[0])
        raise UndefinedValueError(
            f"水量平衡在第 {row} 行为缺测值或无穷大，请先进行数据清洗\n"
            f"Water balance is undefined at row {row}, please clean data first",
            row=row,
        )

    deficit = np.zeros(n_rows, dtype=float)
    iinst = [pd.NA] * n_rows

    state = DeficitState()
    for i in range(n_rows):
        state, deficit[i], event_id = step_deficit(state, wbal[i], params, reset=reset_mask[i])
        if event_id is not None:
            iinst[i] = event_id

    logger.debug(
        "Scanned %d rows: %d events, %d calendar resets",
        n_rows, state.event_id, int(reset_mask.sum()),
    )

    return deficit, pd.Series(iinst, dtype='Int64'), state


# ============================================================================
# 主函数 (Main Function)
# ============================================================================

def cwd(
    df: pd.DataFrame,
    varname_wbal: str = DEFAULT_VARNAME_WBAL,
    varname_date: str = DEFAULT_VARNAME_DATE,
    thresh_terminate: float = DEFAULT_THRESH_TERMINATE,
    thresh_drop: float = DEFAULT_THRESH_DROP,
    doy_reset: Optional[int] = None
) -> CwdResult:
    """
    计算累积水分亏缺并识别亏缺事件
    Compute the cumulative water deficit and identify deficit events.

    参数 (Parameters):
    -----------------
    df : pd.DataFrame
        按时间严格递增排序的水量平衡序列
        Water balance series sorted strictly ascending by time
    varname_wbal : str, default='wbal'
        水量平衡列名 (mm per time step，正值为盈余)
        Water balance column (mm per time step, positive = surplus)
    varname_date : str, default='time'
        时间列名 (time column)
    thresh_terminate : float, default=0.0
        事件耗尽阈值 (mm) (exhaustion threshold, mm)
    thresh_drop : float, default=0.1
        相对事件峰值的回落比例 (drop fraction relative to the event peak)
    doy_reset : int, optional
        每年强制归零的年积日 (day-of-year of the yearly forced reset)

    返回值 (Returns):
    ---------------
    CwdResult
        ``inst``: 事件表 (event table) with columns ``iinst``, ``idx_start``,
        ``len``, ``date_start``, ``date_end``, ``deficit``, ``date_max``.
        ``df``: 输入副本加 ``doy``、``deficit``、``iinst`` 列
        (copy of the input with ``doy``, ``deficit`` and ``iinst`` columns).

    Raises
    ------
    InvalidConfigurationError, MalformedInputError, UndefinedValueError

    示例 (Examples):
    --------------
    >>> df = pd.DataFrame({
    ...     'time': pd.date_range('2001-06-01', periods=7, freq='D'),
    ...     'wbal': [-5, -3, 2, -10, 15, -1, -1],
    ... })
    >>> out = cwd(df, thresh_drop=0.5)
    >>> out.df['deficit'].tolist()
    [5.0, 8.0, 6.0, 16.0, 0.0, 1.0, 2.0]
    >>> out.inst[['iinst', 'len', 'deficit']].values.tolist()
    [[1, 5, 16.0], [2, 2, 2.0]]
    """
    params = DeficitParams(
        thresh_terminate=thresh_terminate,
        thresh_drop=thresh_drop,
        doy_reset=doy_reset,
    )

    out = prepare_input(df, varname_wbal=varname_wbal, varname_date=varname_date)
    reset_mask = _reset_mask(out[varname_date], params.doy_reset)

    deficit, iinst, _ = scan_deficit(out[varname_wbal].to_numpy(), params, reset_mask=reset_mask)
    out['deficit'] = deficit
    out['iinst'] = iinst.array

    inst = summarize_events(out, varname_date=varname_date)

    logger.debug(
        "cwd: %d rows, %d events, max deficit %.3f",
        len(out), len(inst), float(out['deficit'].max()),
    )

    return CwdResult(inst=inst, df=out)


__all__ = [
    'DeficitParams',
    'DeficitState',
    'CwdResult',
    'validate_params',
    'prepare_input',
    'step_deficit',
    'scan_deficit',
    'cwd',
]
