import numpy as np
import numpy.ma as ma
from scipy.stats import median_abs_deviation, rankdata

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.missing import (
    as_float_copy,
    check_matrix_axis,
    check_spread_policy,
    handle_degenerate_spread,
    iter_slices,
)


def _check_non_negative(arr: ma.MaskedArray) -> None:
    if np.any(arr.compressed() < 0):
        raise InvalidArgumentError(
            "Matrix has negative values. Please remove negative values before normalizing."
        )


def _masked_median(arr: ma.MaskedArray, axis: int) -> np.ndarray:
    return ma.median(arr, axis=axis, keepdims=True).filled(np.nan)


def intnorm(data, axis: int = 1, lam: float = 1.0) -> ma.MaskedArray:
    """
    Total area normalization: every value is divided by `lam` times the sum of its slice.

    Parameters:
        data: Non-negative matrix (samples x features); masked cells are left out of the
            sums and stay masked.
        axis (int): 1 normalizes each row (sample), 0 each column.
        lam (float): Scaling factor of the slice totals.

    Returns:
        ma.MaskedArray: Normalized float64 copy.
    """
    check_matrix_axis(axis, allow_none=False)
    arr = as_float_copy(data)
    _check_non_negative(arr)
    mask = ma.getmaskarray(arr)
    totals = np.where(mask, 0.0, arr.data).sum(axis=axis, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = arr.data / (lam * totals)
    return ma.MaskedArray(np.where(mask, arr.data, out), mask=mask.copy())


def pqnorm(data) -> ma.MaskedArray:
    """
    Probabilistic quotient normalization, samples as rows.

    Rows are first area-normalized; the reference spectrum is the column-wise median,
    and each row is divided by the median of its quotients against that reference.
    """
    arr = intnorm(data, axis=1)
    mask = ma.getmaskarray(arr)
    reference = _masked_median(arr, axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        quotients = ma.MaskedArray(arr.data / reference, mask=mask)
        out = arr.data / _masked_median(quotients, axis=1)
    return ma.MaskedArray(np.where(mask, arr.data, out), mask=mask.copy())


def quantilenorm(data) -> ma.MaskedArray:
    """
    Quantile normalization of the columns.

    Each column is ranked with minimum ("competition") ranks, so ties share the lowest
    rank, and every value is replaced by the mean of the sorted columns at its rank.
    """
    arr = as_float_copy(data)
    if ma.getmaskarray(arr).any():
        raise InvalidArgumentError("quantilenorm needs a complete matrix; impute missing values first.")
    values = arr.data
    ranks = rankdata(values, method="min", axis=0).astype(int)
    rank_means = np.sort(values, axis=0).mean(axis=1)
    return ma.MaskedArray(rank_means[ranks - 1], mask=np.zeros(values.shape, dtype=bool))


def huberloss(x, alpha: float = 1.0):
    """
    Huber loss: d^2 / 2 if |x| <= alpha, alpha * (|x| - alpha^2 / 2) otherwise.

    Works elementwise on scalars and arrays.
    """
    if alpha <= 0:
        raise InvalidArgumentError("Huber crossover parameter alpha must be positive.")
    d = np.abs(x)
    return np.where(d <= alpha, d ** 2 / 2, alpha * (d - alpha ** 2 / 2))


def huberize(data, alpha: float = 1.0, axis: int = 0, on_degenerate_spread: str = "fail") -> ma.MaskedArray:
    """
    Robust outlier dampening per slice with the Huber loss.

    Each slice is standardized with its median and normal-scaled MAD, values are
    mapped through sign(z) * sqrt(2 * huberloss(z)) and scaled back. Values within
    `alpha` MADs of the median are unchanged.

    Parameters:
        data: Matrix; masked cells are ignored and stay masked.
        alpha (float): Huber crossover, > 0.
        axis (int): 0 dampens each column, 1 each row.
        on_degenerate_spread (str): "fail" raises NumericDegeneracyError listing every
            slice with zero MAD; "propagate_nan" warns and writes NaN there.
    """
    check_matrix_axis(axis, allow_none=False)
    check_spread_policy(on_degenerate_spread)
    if alpha <= 0:
        raise InvalidArgumentError("Huber crossover parameter alpha must be positive.")
    arr = as_float_copy(data)
    mask = ma.getmaskarray(arr)
    values = arr.data

    stats = []
    degenerate = []
    for idx, sel in iter_slices(values.shape, axis):
        observed = values[sel][~mask[sel]]
        if observed.size == 0:
            stats.append((sel, np.nan, np.nan))
            continue
        med = np.median(observed)
        s = median_abs_deviation(observed, center=np.median, scale="normal")
        if s == 0 or not np.isfinite(s):
            degenerate.append(idx)
        stats.append((sel, med, s))

    handle_degenerate_spread("MAD (median absolute deviation)", axis, degenerate, on_degenerate_spread)

    bad = set(degenerate)
    for idx, (sel, med, s) in enumerate(stats):
        target = values[sel]
        keep = ~mask[sel]
        if idx in bad:
            target[keep] = np.nan
            continue
        if not np.isfinite(s):
            continue
        z = (target[keep] - med) / s
        target[keep] = med + s * np.sign(z) * np.sqrt(2 * huberloss(z, alpha))
    return arr
