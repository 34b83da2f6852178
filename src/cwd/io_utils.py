"""
IO utilities for reading FLUXNET-style daily site files and assembling the
water balance series consumed by ``cwd``.

The reader is a thin pandas wrapper: it parses the ``TIMESTAMP`` column
(``YYYYMMDD`` integers or ISO dates) and turns the FLUXNET missing value
flag (-9999) into NaN. Unit conversions live in ``cwd.pet``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .constants import DEFAULT_VARNAME_DATE, FLUXNET_MISSING_VALUE
from .exceptions import MalformedInputError
from .pet import convert_et

logger = logging.getLogger(__name__)

FLUXNET_TIME_COLUMN = "TIMESTAMP"


def read_fluxnet_csv(
    path: Union[str, Path],
    columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Read a daily FLUXNET CSV file.

    Returns a DataFrame with ``TIMESTAMP`` as datetime and the requested
    columns (all columns if ``columns`` is None), missing values as NaN.
    """
    path = Path(path)
    usecols = None
    if columns is not None:
        usecols = [FLUXNET_TIME_COLUMN] + [c for c in columns if c != FLUXNET_TIME_COLUMN]

    try:
        df = pd.read_csv(path, usecols=usecols, na_values=[FLUXNET_MISSING_VALUE, "-9999"])
    except ValueError as exc:
        # usecols with an unknown column name
        raise MalformedInputError(f"Cannot read {path}: {exc}") from exc

    if FLUXNET_TIME_COLUMN not in df.columns:
        raise MalformedInputError(
            f"Column '{FLUXNET_TIME_COLUMN}' not found in {path}",
            column=FLUXNET_TIME_COLUMN,
        )

    stamps = df[FLUXNET_TIME_COLUMN]
    if pd.api.types.is_integer_dtype(stamps):
        df[FLUXNET_TIME_COLUMN] = pd.to_datetime(stamps.astype(str), format="%Y%m%d")
    else:
        df[FLUXNET_TIME_COLUMN] = pd.to_datetime(stamps)

    logger.info("Read %d rows from %s", len(df), path)
    return df


def prepare_water_balance(
    df: pd.DataFrame,
    varnam_le: str = "LE_F_MDS",
    varnam_temp: str = "TA_F_MDS",
    varnam_patm: str = "PA_F",
    varnam_prec: str = "P_F",
    varnam_time: str = FLUXNET_TIME_COLUMN,
    patm_in_kpa: bool = True,
    dropna: bool = True,
) -> pd.DataFrame:
    """Add evapotranspiration and water balance columns.

    ``et`` (mm d-1) is converted from latent heat flux; the water balance is
    ``wbal = liquid_to_soil - et`` when a ``liquid_to_soil`` column exists
    (output of ``simulate_snow``), otherwise ``wbal = prec - et``. The time
    column is renamed to ``time``.

    Rows with an undefined water balance are dropped when ``dropna`` is
    True, otherwise they are kept and ``cwd`` will reject them.
    """
    required = [varnam_time, varnam_le, varnam_temp, varnam_patm]
    if "liquid_to_soil" not in df.columns:
        required.append(varnam_prec)
    for column in required:
        if column not in df.columns:
            raise MalformedInputError(f"Missing required column '{column}'", column=column)

    out = df.rename(columns={varnam_time: DEFAULT_VARNAME_DATE})

    patm = out[varnam_patm].to_numpy(dtype=float)
    if patm_in_kpa:
        patm = patm * 1000.0

    out["et"] = convert_et(
        out[varnam_le].to_numpy(dtype=float),
        out[varnam_temp].to_numpy(dtype=float),
        patm,
    )

    water_in = out["liquid_to_soil"] if "liquid_to_soil" in out.columns else out[varnam_prec]
    out["wbal"] = water_in.to_numpy(dtype=float) - out["et"].to_numpy()

    if dropna:
        undefined = np.isnan(out["wbal"].to_numpy())
        if undefined.any():
            logger.warning(
                "Dropping %d of %d rows with undefined water balance",
                int(undefined.sum()), len(out),
            )
            out = out.loc[~undefined].reset_index(drop=True)

    return out
