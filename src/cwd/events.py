"""
事件汇总模块 (Event Summary Module)

将逐行事件编号 (``iinst``) 归约为事件表。
Reduces per-row event ids (``iinst``) into the event table.
"""

import numpy as np
import pandas as pd
from typing import Dict, List

from .constants import DEFAULT_VARNAME_DATE
from .exceptions import MalformedInputError


EVENT_COLUMNS = [
    'iinst',
    'idx_start',
    'len',
    'date_start',
    'date_end',
    'deficit',
    'date_max',
]


def _empty_event_table(dates: pd.Series) -> pd.DataFrame:
    return pd.DataFrame({
        'iinst': pd.Series([], dtype='int64'),
        'idx_start': pd.Series([], dtype='int64'),
        'len': pd.Series([], dtype='int64'),
        'date_start': pd.Series([], dtype=dates.dtype),
        'date_end': pd.Series([], dtype=dates.dtype),
        'deficit': pd.Series([], dtype=float),
        'date_max': pd.Series([], dtype=dates.dtype),
    })


def summarize_events(
    df: pd.DataFrame,
    varname_date: str = DEFAULT_VARNAME_DATE,
    varname_deficit: str = 'deficit',
    varname_iinst: str = 'iinst'
) -> pd.DataFrame:
    """
    从注释序列计算事件表
    Build the event table from an annotated series.

    统计指标 (Metrics):
    -------------------
    对每个非空事件编号计算:
    For every non-null event id:
    - idx_start: 首行位置 (0-based position of the first row)
    - len: 行数 (number of rows)
    - date_start / date_end: 首末行时间 (first and last timestamps)
    - deficit: 事件期间最大亏缺 (peak deficit)
    - date_max: 峰值出现时间，并列时取最早 (time of the peak, first on ties)

    参数 (Parameters):
    -----------------
    df : pd.DataFrame
        ``cwd`` 输出的注释序列 (annotated series as returned by ``cwd``)
    varname_date, varname_deficit, varname_iinst : str
        列名 (column names)

    返回值 (Returns):
    ---------------
    inst : pd.DataFrame
        按 iinst 升序排列的事件表 (event table ordered by ``iinst``)

    Raises
    ------
    MalformedInputError
        缺列或同一事件的行不连续
        Missing columns or non-contiguous rows within one event

    Notes
    -----
    纯函数：对同一输入重复调用得到相同结果
    Pure function: repeated calls on the same frame give identical tables.
    """
    for column in (varname_date, varname_deficit, varname_iinst):
        if column not in df.columns:
            raise MalformedInputError(
                f"缺少必需列 (Missing required column) '{column}'",
                column=column,
            )

    dates = pd.to_datetime(df[varname_date]).reset_index(drop=True)
    try:
        iinst = df[varname_iinst].astype('Int64').reset_index(drop=True)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(
            f"事件编号必须为整数 (Event ids must be integers): {e}",
            column=varname_iinst,
        ) from e
    tagged = iinst.notna().to_numpy()

    if not tagged.any():
        return _empty_event_table(dates)

    rows = pd.DataFrame({
        'iinst': iinst[tagged].astype('int64').to_numpy(),
        'pos': np.flatnonzero(tagged),
        'date': dates[tagged].to_numpy(),
        'deficit': df[varname_deficit].to_numpy(dtype=float)[tagged],
    })

    grouped = rows.groupby('iinst', sort=True)
    first_pos = grouped['pos'].min()
    last_pos = grouped['pos'].max()
    n_rows = grouped.size()

    broken = n_rows.index[((last_pos - first_pos + 1) != n_rows).to_numpy()]
    if len(broken) > 0:
        raise MalformedInputError(
            f"事件 {int(broken[0])} 的行不连续 (Rows of event {int(broken[0])} are not contiguous)",
            column=varname_iinst,
        )

    # idxmax 返回首个最大值 (idxmax returns the first maximum)
    peak = rows.loc[grouped['deficit'].idxmax().to_numpy()]

    inst = pd.DataFrame({
        'iinst': n_rows.index.to_numpy(dtype='int64'),
        'idx_start': first_pos.to_numpy(dtype='int64'),
        'len': n_rows.to_numpy(dtype='int64'),
        'date_start': dates.iloc[first_pos.to_numpy()].to_numpy(),
        'date_end': dates.iloc[last_pos.to_numpy()].to_numpy(),
        'deficit': peak['deficit'].to_numpy(dtype=float),
        'date_max': peak['date'].to_numpy(),
    })

    return inst[EVENT_COLUMNS]


def event_statistics(
    df: pd.DataFrame,
    inst: pd.DataFrame,
    varname_wbal: str = 'wbal'
) -> List[Dict]:
    """
    计算事件期间水量平衡的统计量
    Water balance statistics over each event.

    Parameters
    ----------
    df : pd.DataFrame
        注释序列 (annotated series)
    inst : pd.DataFrame
        ``summarize_events`` 的输出 (output of ``summarize_events``)
    varname_wbal : str
        水量平衡列名 (water balance column)

    Returns
    -------
    list of dict
        事件表字段加 ``wbal_total``、``wbal_mean``、``wbal_min``
        Event fields plus ``wbal_total``, ``wbal_mean`` and ``wbal_min``
    """
    wbal = df[varname_wbal].to_numpy(dtype=float)
    event_stats = []

    for event in inst.to_dict('records'):
        start = int(event['idx_start'])
        event_data = wbal[start:start + int(event['len'])]

        stats = {
            **event,
            'wbal_total': float(np.sum(event_data)),
            'wbal_mean': float(np.mean(event_data)),
            'wbal_min': float(np.min(event_data)),
        }
        event_stats.append(stats)

    return event_stats


__all__ = [
    'EVENT_COLUMNS',
    'summarize_events',
    'event_statistics',
]
