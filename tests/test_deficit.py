"""
累积水分亏缺扫描测试 (Tests for the cumulative water deficit scan)
"""

import numpy as np
import pandas as pd
import pytest

from cwd.deficit import (
    CwdResult,
    DeficitParams,
    DeficitState,
    cwd,
    prepare_input,
    scan_deficit,
    step_deficit,
)
from cwd.exceptions import (
    CwdError,
    InvalidConfigurationError,
    MalformedInputError,
    UndefinedValueError,
)


def iinst_list(df):
    """Event ids as a list with None for rows outside events."""
    return [None if pd.isna(v) else int(v) for v in df['iinst']]


# ============================================================================
# 端到端 (End to end)
# ============================================================================

def test_reference_series(reference_series):
    out = cwd(reference_series, thresh_terminate=0.0, thresh_drop=0.5)

    assert isinstance(out, CwdResult)
    np.testing.assert_allclose(out.df['deficit'], [5, 8, 6, 16, 0, 1, 2])
    assert iinst_list(out.df) == [1, 1, 1, 1, 1, 2, 2]

    dates = reference_series['time']
    inst = out.inst
    assert inst['iinst'].tolist() == [1, 2]
    assert inst['idx_start'].tolist() == [0, 5]
    assert inst['len'].tolist() == [5, 2]
    assert inst['deficit'].tolist() == [16.0, 2.0]
    assert list(inst['date_start']) == [dates[0], dates[5]]
    assert list(inst['date_end']) == [dates[4], dates[6]]
    assert list(inst['date_max']) == [dates[3], dates[6]]


def test_output_columns(reference_series):
    out = cwd(reference_series, thresh_drop=0.5)

    assert list(out.df.columns) == ['time', 'wbal', 'doy', 'deficit', 'iinst']
    assert str(out.df['iinst'].dtype) == 'Int64'
    assert list(out.inst.columns) == [
        'iinst', 'idx_start', 'len', 'date_start', 'date_end', 'deficit', 'date_max'
    ]


def test_nonnegative_balance_has_no_events(make_series):
    out = cwd(make_series([0.0, 1.0, 2.5, 0.0, 3.0]), thresh_drop=0.5)

    assert (out.df['deficit'] == 0).all()
    assert out.df['iinst'].isna().all()
    assert len(out.inst) == 0


def test_isolated_negative_gives_one_event(make_series):
    out = cwd(make_series([0, 0, -4, 0, 0]), thresh_drop=0.5)

    assert len(out.inst) == 1
    event = out.inst.iloc[0]
    assert event['deficit'] == pytest.approx(4.0)
    assert event['idx_start'] == 2
    assert event['date_max'] == out.df['time'].iloc[2]


def test_isolated_negative_at_end_is_single_row_event(make_series):
    out = cwd(make_series([0, 0, -4]), thresh_drop=0.5)

    assert len(out.inst) == 1
    assert out.inst['len'].iloc[0] == 1
    assert out.inst['deficit'].iloc[0] == pytest.approx(4.0)
    assert out.inst['date_start'].iloc[0] == out.inst['date_end'].iloc[0]


def test_open_event_closed_at_series_end(make_series):
    out = cwd(make_series([1, -2, -2, -2]), thresh_drop=0.5)

    assert out.inst['date_end'].iloc[-1] == out.df['time'].iloc[-1]
    assert out.inst['len'].iloc[-1] == 3


# ============================================================================
# 重置规则 (Reset rules)
# ============================================================================

def test_fractional_drop_boundary_closes(make_series):
    out = cwd(make_series([-10, 5, -1]), thresh_drop=0.5)

    np.testing.assert_allclose(out.df['deficit'], [10, 0, 1])
    assert iinst_list(out.df) == [1, 1, 2]


def test_fractional_drop_just_above_boundary_continues(make_series):
    out = cwd(make_series([-10, 4.75]), thresh_drop=0.5)

    np.testing.assert_allclose(out.df['deficit'], [10, 5.25])
    assert iinst_list(out.df) == [1, 1]


def test_next_event_does_not_carry_previous_peak(make_series):
    out = cwd(make_series([-10, 6, -3]), thresh_drop=0.5)

    np.testing.assert_allclose(out.df['deficit'], [10, 0, 3])
    assert out.inst['deficit'].tolist() == [10.0, 3.0]


def test_zero_drop_closes_on_first_decrease(make_series):
    out = cwd(make_series([-2, -3, 1, -4]), thresh_drop=0.0)

    np.testing.assert_allclose(out.df['deficit'], [2, 5, 0, 4])
    assert iinst_list(out.df) == [1, 1, 1, 2]


def test_zero_drop_closes_on_flat_row(make_series):
    out = cwd(make_series([-2, 0, -1]), thresh_drop=0.0)

    np.testing.assert_allclose(out.df['deficit'], [2, 0, 1])
    assert iinst_list(out.df) == [1, 1, 2]


def test_zero_drop_deficit_monotonic_within_events():
    rng = np.random.default_rng(7)
    df = pd.DataFrame({
        'time': pd.date_range('2001-01-01', periods=400, freq='D'),
        'wbal': np.round(rng.normal(-0.5, 3.0, 400), 2),
    })
    out = cwd(df, thresh_drop=0.0)
    deficit = out.df['deficit'].to_numpy()
    wbal = out.df['wbal'].to_numpy()

    assert len(out.inst) > 5
    for event in out.inst.itertuples(index=False):
        rows = deficit[event.idx_start:event.idx_start + event.len]
        # 只有关闭行的亏缺为零 (only the closing row has zero deficit)
        closed = rows[-1] == 0.0
        body = rows[:-1] if closed else rows
        assert np.all(np.diff(body) > 0)
        if closed:
            assert rows[-1] == 0.0
        # 新事件从零开始 (a new event restarts from zero)
        assert rows[0] == pytest.approx(-wbal[event.idx_start])


def test_full_drop_closes_only_at_zero(make_series):
    out = cwd(make_series([-3, 1, 2, -1]), thresh_drop=1.0)

    np.testing.assert_allclose(out.df['deficit'], [3, 2, 0, 1])
    assert iinst_list(out.df) == [1, 1, 1, 2]


def test_exhaustion_carries_deficit(make_series):
    out = cwd(make_series([-3, 2.5, -0.25]), thresh_terminate=1.0, thresh_drop=1.0)

    np.testing.assert_allclose(out.df['deficit'], [3, 0.5, 0.75])
    assert iinst_list(out.df) == [1, 1, None]
    assert out.inst['len'].tolist() == [2]


def test_carried_deficit_rearms_new_event(make_series):
    out = cwd(make_series([-3, 2.5, -0.25, -2]), thresh_terminate=1.0, thresh_drop=1.0)

    # the carried 0.75 mm counts towards the next event once it exceeds 1 mm
    np.testing.assert_allclose(out.df['deficit'], [3, 0.5, 0.75, 2.75])
    assert iinst_list(out.df) == [1, 1, None, 2]
    assert out.inst['len'].tolist() == [2, 1]
    assert out.inst['idx_start'].tolist() == [0, 3]


def test_fractional_drop_takes_precedence(make_series):
    out = cwd(make_series([-4, 3]), thresh_terminate=2.0, thresh_drop=0.5)

    # both rules hold on the second row; drop resets to zero
    np.testing.assert_allclose(out.df['deficit'], [4, 0])
    assert iinst_list(out.df) == [1, 1]


def test_zero_terminate_closes_at_zero(make_series):
    out = cwd(make_series([-2, 1, 1, 0, -1]), thresh_terminate=0.0, thresh_drop=1.0)

    np.testing.assert_allclose(out.df['deficit'], [2, 1, 0, 0, 1])
    assert iinst_list(out.df) == [1, 1, 1, None, 2]


# ============================================================================
# 日历重置 (Calendar reset)
# ============================================================================

def test_doy_reset_closes_event_on_reset_row(make_series):
    df = make_series([-1] * 6, start='2000-12-29')
    out = cwd(df, thresh_drop=0.5, doy_reset=1)

    np.testing.assert_allclose(out.df['deficit'], [1, 2, 3, 0, 1, 2])
    assert iinst_list(out.df) == [1, 1, 1, 1, 2, 2]

    first = out.inst.iloc[0]
    assert first['date_end'] == pd.Timestamp('2001-01-01')
    assert first['len'] == 4
    assert first['deficit'] == pytest.approx(3.0)


def test_doy_reset_every_year(make_series):
    df = make_series([-1] * (365 * 3), start='2001-01-01')
    out = cwd(df, thresh_drop=0.5, doy_reset=100)

    on_reset = out.df['doy'] == 100
    assert on_reset.sum() == 3
    assert (out.df.loc[on_reset, 'deficit'] == 0).all()
    assert len(out.inst) == 4

    after_reset = np.flatnonzero(on_reset.to_numpy()) + 1
    assert (out.df['deficit'].to_numpy()[after_reset] == 1).all()


def test_doy_reset_outside_event(make_series):
    df = make_series([1, 1, -2], start='2000-12-31')
    out = cwd(df, thresh_drop=0.5, doy_reset=1)

    np.testing.assert_allclose(out.df['deficit'], [0, 0, 2])
    assert iinst_list(out.df) == [None, None, 1]


def test_doy_reset_first_row_of_day_only():
    df = pd.DataFrame({
        'time': pd.to_datetime(['2001-01-01 00:00', '2001-01-01 12:00', '2001-01-02 00:00']),
        'wbal': [-1.0, -1.0, -1.0],
    })
    out = cwd(df, thresh_drop=0.5, doy_reset=1)

    np.testing.assert_allclose(out.df['deficit'], [0, 1, 2])
    assert iinst_list(out.df) == [None, 1, 1]


# ============================================================================
# 单步转移 (Single-step transition)
# ============================================================================

def test_step_opens_event():
    params = DeficitParams(thresh_drop=0.5)
    state, deficit, iinst = step_deficit(DeficitState(), -5.0, params)

    assert deficit == 5.0
    assert iinst == 1
    assert state == DeficitState(deficit=5.0, max_deficit=5.0, in_event=True, event_id=1)


def test_step_surplus_outside_event():
    params = DeficitParams()
    state, deficit, iinst = step_deficit(DeficitState(), 3.0, params)

    assert deficit == 0.0
    assert iinst is None
    assert not state.in_event
    assert state.event_id == 0


def test_step_updates_peak():
    params = DeficitParams(thresh_drop=0.5)
    start = DeficitState(deficit=5.0, max_deficit=5.0, in_event=True, event_id=3)
    state, deficit, iinst = step_deficit(start, -2.0, params)

    assert (deficit, iinst) == (7.0, 3)
    assert state.max_deficit == 7.0
    assert state.in_event


def test_step_reset_closes_open_event():
    params = DeficitParams(doy_reset=1)
    start = DeficitState(deficit=5.0, max_deficit=6.0, in_event=True, event_id=2)
    state, deficit, iinst = step_deficit(start, -4.0, params, reset=True)

    assert deficit == 0.0
    assert iinst == 2
    assert not state.in_event
    assert state.event_id == 2


def test_step_rejects_nan():
    with pytest.raises(UndefinedValueError):
        step_deficit(DeficitState(), float('nan'), DeficitParams())


@pytest.mark.parametrize('value', [np.inf, -np.inf])
def test_step_rejects_infinite(value):
    with pytest.raises(UndefinedValueError):
        step_deficit(DeficitState(), value, DeficitParams())


def test_step_does_not_mutate_state():
    start = DeficitState()
    step_deficit(start, -1.0, DeficitParams())
    assert start == DeficitState()


def test_scan_returns_final_state():
    deficit, iinst, state = scan_deficit([-1, -1, 5, -2], DeficitParams(thresh_drop=0.5))

    np.testing.assert_allclose(deficit, [1, 2, 0, 2])
    assert str(iinst.dtype) == 'Int64'
    assert state.event_id == 2
    assert state.in_event


def test_scan_reset_mask_length_checked():
    with pytest.raises(MalformedInputError):
        scan_deficit([-1, -1], DeficitParams(), reset_mask=[True])


# ============================================================================
# 错误处理 (Error handling)
# ============================================================================

def test_nan_fails_fast_with_row(make_series):
    with pytest.raises(UndefinedValueError) as excinfo:
        cwd(make_series([-1.0, np.nan, -1.0, np.nan]))

    assert excinfo.value.row == 1
    assert 'Row: 1' in str(excinfo.value)


@pytest.mark.parametrize('value', [np.inf, -np.inf])
def test_infinite_balance_fails_fast_with_row(make_series, value):
    with pytest.raises(UndefinedValueError) as excinfo:
        cwd(make_series([-1.0, value, -1.0]), thresh_drop=0.5)

    assert excinfo.value.row == 1


@pytest.mark.parametrize('kwargs', [
    {'thresh_drop': 1.5},
    {'thresh_drop': -0.1},
    {'thresh_drop': float('nan')},
    {'thresh_terminate': -1.0},
    {'thresh_terminate': float('inf')},
    {'doy_reset': 0},
    {'doy_reset': 367},
    {'doy_reset': 1.5},
    {'doy_reset': True},
])
def test_invalid_configuration(reference_series, kwargs):
    with pytest.raises(InvalidConfigurationError):
        cwd(reference_series, **kwargs)


def test_params_validated_on_construction():
    with pytest.raises(InvalidConfigurationError):
        DeficitParams(thresh_drop=2.0)


def test_missing_column(reference_series):
    with pytest.raises(MalformedInputError) as excinfo:
        cwd(reference_series, varname_wbal='balance')
    assert excinfo.value.column == 'balance'


def test_empty_series():
    df = pd.DataFrame({'time': pd.to_datetime([]), 'wbal': []})
    with pytest.raises(MalformedInputError):
        cwd(df)


def test_descending_time_rejected(make_series):
    df = make_series([-1, -2, -3]).iloc[::-1].reset_index(drop=True)
    with pytest.raises(MalformedInputError) as excinfo:
        cwd(df)
    assert excinfo.value.row == 1


def test_duplicate_time_rejected(make_series):
    df = make_series([-1, -2, -3])
    df.loc[2, 'time'] = df.loc[1, 'time']
    with pytest.raises(MalformedInputError):
        cwd(df)


def test_non_numeric_balance_rejected(make_series):
    df = make_series([-1, -2])
    df['wbal'] = ['dry', 'wet']
    with pytest.raises(MalformedInputError):
        cwd(df)


def test_not_a_dataframe():
    with pytest.raises(MalformedInputError):
        prepare_input([[1, 2]])


def test_errors_are_value_errors(make_series):
    with pytest.raises(ValueError):
        cwd(make_series([np.nan]))
    assert issubclass(UndefinedValueError, CwdError)


# ============================================================================
# 输入输出约定 (Input and output contract)
# ============================================================================

def test_input_not_mutated(reference_series):
    before = reference_series.copy()
    cwd(reference_series, thresh_drop=0.5)
    pd.testing.assert_frame_equal(reference_series, before)


def test_custom_column_names_and_index(reference_series):
    df = reference_series.rename(columns={'time': 'date', 'wbal': 'bal'})
    df.index = np.arange(100, 107)
    df['site'] = 'CH-Lae'

    out = cwd(df, varname_wbal='bal', varname_date='date', thresh_drop=0.5)

    assert list(out.df.index) == list(range(100, 107))
    assert (out.df['site'] == 'CH-Lae').all()
    np.testing.assert_allclose(out.df['deficit'], [5, 8, 6, 16, 0, 1, 2])
    assert out.inst['idx_start'].tolist() == [0, 5]
    assert out.inst['date_start'].iloc[1] == df['date'].iloc[5]


def test_string_dates_are_parsed(reference_series):
    df = reference_series.copy()
    df['time'] = df['time'].dt.strftime('%Y-%m-%d')
    out = cwd(df, thresh_drop=0.5)

    assert pd.api.types.is_datetime64_any_dtype(out.df['time'])
    assert out.df['doy'].iloc[0] == pd.Timestamp('2001-06-01').dayofyear


def test_deterministic(reference_series):
    first = cwd(reference_series, thresh_drop=0.5)
    second = cwd(reference_series, thresh_drop=0.5)

    pd.testing.assert_frame_equal(first.df, second.df)
    pd.testing.assert_frame_equal(first.inst, second.inst)
