from __future__ import annotations

from typing import Tuple

import numpy as np
import numpy.ma as ma
import polars as pl
from scipy.stats import median_abs_deviation

from junbi.utils.errors import NumericDegeneracyError
from junbi.utils.utils import log_info
from junbi.workflow.missing import as_missing_array, check_matrix_axis, iter_slices
from junbi.workflow.tables import as_polars


def _null_mask(data) -> np.ndarray:
    """Missing cells of a matrix, or null cells of every column of a table."""
    if isinstance(data, (np.ndarray, list, tuple)):
        return ma.getmaskarray(as_missing_array(data))
    df, _ = as_polars(data)
    if df.width == 0:
        return np.zeros((df.height, 0), dtype=bool)
    return np.column_stack([df[c].is_null().to_numpy() for c in df.columns])


def missing_percentages(data) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Fractions of missing cells.

    Returns:
        (per_column, per_row, total), each a fraction in [0, 1].
    """
    mask = _null_mask(data)
    n_rows, n_cols = mask.shape
    per_col = mask.sum(axis=0) / n_rows if n_rows else np.zeros(n_cols)
    per_row = mask.sum(axis=1) / n_cols if n_cols else np.zeros(n_rows)
    total = float(mask.sum() / mask.size) if mask.size else 0.0
    return per_col, per_row, total


def missing_summary(table, digits: int = 2) -> pl.DataFrame:
    """
    Table rendered as strings with missingness margins, and log it.

    A `pmissing_rows` column holds each row's missing fraction; a last row labelled
    `pmissing_cols` holds each column's fraction, with the overall fraction in its
    `pmissing_rows` cell.
    """
    df, _ = as_polars(table)
    per_col, per_row, total = missing_percentages(df)

    body = df.select(pl.all().cast(pl.Utf8).fill_null("missing"))
    footer = pl.DataFrame({c: [str(round(float(v), digits))] for c, v in zip(df.columns, per_col)})
    out = pl.concat([body, footer], how="vertical")
    out = out.with_columns(
        pl.Series("pmissing_rows", [str(round(float(v), digits)) for v in per_row] + [str(round(total, digits))])
    )
    out = out.with_row_index("row_label").with_columns(
        pl.when(pl.col("row_label") == df.height).then(pl.lit("pmissing_cols")).otherwise(
            (pl.col("row_label") + 1).cast(pl.Utf8)
        ).alias("row_label")
    )
    log_info(f"Missingness summary:\n{out}")
    return out


def check_mad(data, axis: int = 0) -> None:
    """
    Raise NumericDegeneracyError naming every slice whose normal-scaled MAD is zero.

    Slices are the observed values along `axis` (0: each column, 1: each row).
    """
    check_matrix_axis(axis, allow_none=False)
    arr = as_missing_array(data)
    mask = ma.getmaskarray(arr)
    bad = []
    for idx, sel in iter_slices(arr.shape, axis):
        observed = np.asarray(arr.data[sel], dtype=np.float64)[~mask[sel]]
        if observed.size == 0 or median_abs_deviation(observed, scale="normal") == 0:
            bad.append(idx)
    if bad:
        raise NumericDegeneracyError("MAD (median absolute deviation)", axis=axis, indices=bad)
