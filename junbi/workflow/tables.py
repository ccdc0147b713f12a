"""Table adapter: run matrix operations over a column range of a dataframe.

Tables are polars DataFrames; pandas DataFrames are converted on the way in and back on
the way out (pandas' NaN becomes a null, i.e. a missing cell). Null cells of the block
become masked cells; a NaN stored in a polars float column stays a value.
"""

from typing import Callable, List, Optional, Tuple

import numpy as np
import numpy.ma as ma

try:
    import polars as pl
except ImportError:
    pl = None

try:
    import pandas as pd
except ImportError:
    pd = None

from junbi.utils.errors import CapabilityUnavailableError, InvalidArgumentError


def as_polars(table) -> Tuple["pl.DataFrame", str]:
    """The table as a polars DataFrame, plus the kind ("polars" or "pandas") it came in as."""
    if pl is None:
        raise CapabilityUnavailableError(
            "Table operations need polars. Install it, or pass a numeric matrix instead."
        )
    if isinstance(table, pl.DataFrame):
        return table, "polars"
    if pd is not None and isinstance(table, pd.DataFrame):
        return pl.from_pandas(table), "pandas"
    raise CapabilityUnavailableError(
        f"No table adapter for {type(table).__name__}; use a polars or pandas DataFrame."
    )


def _from_polars(df: "pl.DataFrame", kind: str):
    return df.to_pandas() if kind == "pandas" else df


def _column_range(width: int, start_col: int, end_col: Optional[int]) -> Tuple[int, int]:
    end = width if end_col is None else end_col
    if not 0 <= start_col < end <= width:
        raise InvalidArgumentError(
            f"Invalid column range [{start_col}, {end_col}) for a table with {width} columns."
        )
    return start_col, end


def _block_from_polars(df: "pl.DataFrame", start: int, end: int) -> Tuple[ma.MaskedArray, List[str]]:
    names = df.columns[start:end]
    block = df.select(names)
    non_numeric = [n for n, dt in zip(names, block.dtypes) if not dt.is_numeric()]
    if non_numeric:
        raise InvalidArgumentError(f"Non-numeric columns in the selected range: {non_numeric}")

    mask = np.column_stack([block[n].is_null().to_numpy() for n in names])
    all_int = all(dt.is_integer() for dt in block.dtypes)
    dtype = np.int64 if all_int else np.float64
    cast = pl.Int64 if all_int else pl.Float64
    values = np.column_stack([block[n].cast(cast).fill_null(0).to_numpy() for n in names])
    return ma.MaskedArray(values.astype(dtype, copy=False), mask=mask), list(names)


def extract_block(table, start_col: int = 0, end_col: Optional[int] = None) -> Tuple[ma.MaskedArray, List[str]]:
    """
    Numeric block of `table` between `start_col` (inclusive) and `end_col` (exclusive).

    Returns:
        (block, names): the block as a MaskedArray (nulls masked) and its column names.
    """
    df, _ = as_polars(table)
    start, end = _column_range(df.width, start_col, end_col)
    return _block_from_polars(df, start, end)


def rebuild_table(table, block, start_col: int = 0, end_col: Optional[int] = None):
    """
    Replace columns [start_col, end_col) of `table` with `block`.

    Leading and trailing columns are kept untouched, in their original order. Masked
    cells of `block` become nulls. The result has the input's table type.
    """
    df, kind = as_polars(table)
    start, end = _column_range(df.width, start_col, end_col)
    names = df.columns[start:end]
    block = ma.asarray(block)
    if block.ndim != 2 or block.shape != (df.height, len(names)):
        raise InvalidArgumentError(
            f"Block of shape {block.shape} does not fit {df.height} rows x {len(names)} columns."
        )

    mask = ma.getmaskarray(block)
    columns = []
    for j, name in enumerate(names):
        series = pl.Series(name, np.asarray(block.data[:, j]))
        if mask[:, j].any():
            series = series.set(pl.Series(mask[:, j]), None)
        columns.append(series)

    parts = [df.select(df.columns[:start]), pl.DataFrame(columns), df.select(df.columns[end:])]
    out = pl.concat([p for p in parts if p.width], how="horizontal")
    return _from_polars(out, kind)


def apply_to_table(table, func: Callable, start_col: int = 0, end_col: Optional[int] = None, **kwargs):
    """
    Run a matrix function over a column range of `table` and put the result back.

    Example:
        apply_to_table(df, impute_knn, start_col=1, k=3)
    """
    block, _ = extract_block(table, start_col, end_col)
    return rebuild_table(table, func(block, **kwargs), start_col, end_col)
