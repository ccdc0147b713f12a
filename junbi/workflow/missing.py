"""Missing-value primitives shared by every imputer.

Missing cells are carried by a `numpy.ma.MaskedArray` mask. NaN in the data buffer is a
value like any other (e.g. the result of a computation) and is never treated as missing
unless a caller asks for it through `as_missing_array(..., missing_values=np.nan)`.

Axis convention used across junbi: `axis` is the numpy axis a slice runs along.
`axis=0` makes every column a slice, `axis=1` every row, and `axis=None` the whole
array is one slice.
"""

from typing import Callable, Iterator, Optional, Tuple

import numpy as np
import numpy.ma as ma

from junbi.utils.errors import (
    AllMissingSliceError,
    InvalidArgumentError,
    InvalidDimensionError,
    NumericDegeneracyError,
    StatisticTypeMismatchError,
)
from junbi.utils.utils import log_warning, trycopy

DEGENERATE_SPREAD_POLICIES = ("fail", "propagate_nan")


def _from_object(arr: np.ndarray) -> ma.MaskedArray:
    mask = np.frompyfunc(lambda v: v is None, 1, 1)(arr).astype(bool)
    observed = arr[~mask]
    if observed.size and all(isinstance(v, (int, np.integer)) and not isinstance(v, bool) for v in observed):
        dtype = np.int64
    else:
        dtype = np.float64
    values = np.zeros(arr.shape, dtype=dtype)
    values[~mask] = observed.astype(dtype)
    return ma.MaskedArray(values, mask=mask)


def as_missing_array(data, missing_values=None) -> ma.MaskedArray:
    """
    Coerce `data` into a MaskedArray whose mask marks the missing cells.

    Args:
        data: MaskedArray (used as is), ndarray, or nested sequence. `None` entries in
            object data are missing.
        missing_values: Optional marker in a plain numeric array to treat as missing.
            `np.nan` masks NaN cells; any other scalar masks cells equal to it.

    Returns:
        A MaskedArray. It is `data` itself when `data` already is one, so callers that
        need isolation must copy.
    """
    if isinstance(data, ma.MaskedArray):
        return data
    arr = np.asarray(data)
    if arr.dtype == object:
        out = _from_object(arr)
    else:
        out = ma.MaskedArray(arr, mask=np.zeros(arr.shape, dtype=bool))
    if missing_values is not None:
        if isinstance(missing_values, float) and np.isnan(missing_values):
            extra = np.isnan(out.data) if out.dtype.kind in "fc" else np.zeros(out.shape, dtype=bool)
        else:
            extra = out.data == missing_values
        out.mask = ma.getmaskarray(out) | extra
    return out


def require_masked(data, name: str, floating: bool = False) -> ma.MaskedArray:
    """In-place operations need a MaskedArray they are allowed to write into."""
    if not isinstance(data, ma.MaskedArray):
        raise InvalidArgumentError(
            f"{name} works in place and needs a numpy.ma.MaskedArray, got {type(data).__name__}. "
            "Use the non in-place variant for other inputs."
        )
    if floating and data.dtype.kind != "f":
        raise InvalidArgumentError(
            f"{name} works in place and needs a floating-point array, got dtype {data.dtype}. "
            "Use the non in-place variant, which promotes to float64."
        )
    return data


def as_float_copy(data, missing_values=None) -> ma.MaskedArray:
    """Value-semantic entry point helper: a float64 copy the caller never sees."""
    arr = as_missing_array(data, missing_values)
    return ma.MaskedArray(
        np.array(arr.data, dtype=np.float64, copy=True),
        mask=ma.getmaskarray(arr).copy(),
    )


def missing_mask(data) -> np.ndarray:
    """Full-shape boolean array, True where a cell is missing."""
    return ma.getmaskarray(as_missing_array(data)).copy()


def fill_values(data: ma.MaskedArray, positions: np.ndarray, values) -> None:
    """Write `values` into the buffer at boolean `positions` and unmask them."""
    data.soften_mask()
    data.data[positions] = values
    mask = ma.getmaskarray(data).copy()
    mask[positions] = False
    data.mask = mask


def clear_mask(data: ma.MaskedArray) -> ma.MaskedArray:
    data.soften_mask()
    data.mask = np.zeros(data.shape, dtype=bool)
    return data


def check_axis(axis: Optional[int], ndim: int) -> None:
    if axis is None:
        return
    if not isinstance(axis, (int, np.integer)) or isinstance(axis, bool):
        raise InvalidArgumentError(f"axis must be an int or None, got {axis!r}")
    if axis >= ndim or axis < -ndim:
        raise InvalidDimensionError(axis, ndim)


def check_matrix_axis(axis, allow_none: bool = True) -> None:
    valid = (0, 1, None) if allow_none else (0, 1)
    if axis not in valid or isinstance(axis, bool):
        raise InvalidArgumentError(f"axis must be one of {valid}, got {axis!r}")


def iter_slices(shape: Tuple[int, ...], axis: Optional[int]) -> Iterator[Tuple[int, tuple]]:
    """Yield `(index, selector)` for every slice of an array of `shape` along `axis`."""
    if axis is None:
        yield 0, (Ellipsis,)
        return
    check_axis(axis, len(shape))
    axis = axis % len(shape)
    other = [d for d in range(len(shape)) if d != axis]
    for flat, idx in enumerate(np.ndindex(*[shape[d] for d in other])):
        sel = [slice(None)] * len(shape)
        for d, i in zip(other, idx):
            sel[d] = i
        yield flat, tuple(sel)


def observed_counts(data: ma.MaskedArray, axis: Optional[int]) -> np.ndarray:
    """Number of observed cells per slice along `axis` (a scalar array for axis=None)."""
    observed = ~ma.getmaskarray(data)
    if axis is None:
        return np.asarray(observed.sum())
    return observed.sum(axis=axis)


def ensure_observed(data: ma.MaskedArray, axis: Optional[int]) -> None:
    """Raise AllMissingSliceError naming every slice along `axis` with nothing observed."""
    counts = np.atleast_1d(observed_counts(data, axis))
    empty = np.flatnonzero(counts.ravel() == 0)
    if empty.size:
        raise AllMissingSliceError(axis, empty.tolist())


def _coerce(value, dtype: np.dtype):
    try:
        cast = np.array(value, dtype=dtype)
    except (TypeError, ValueError, OverflowError) as err:
        raise StatisticTypeMismatchError(value, dtype) from err
    if cast.ndim != 0:
        raise StatisticTypeMismatchError(value, dtype)
    if dtype.kind in "iub" and not cast == value:
        raise StatisticTypeMismatchError(value, dtype)
    return cast[()]


def substitute_inplace(
    data: ma.MaskedArray,
    statistic: Callable[[np.ndarray], object],
    axis: Optional[int] = None,
) -> ma.MaskedArray:
    """
    Replace the missing cells of each slice with `statistic` of its observed values.

    Args:
        data: MaskedArray written in place.
        statistic: Called with a 1-D ndarray of the observed values of a slice; must
            return a scalar storable in `data.dtype`.
        axis: Axis the slices run along, or None for the whole array.

    Returns:
        `data`, with no masked cells left.

    Raises:
        InvalidDimensionError: `axis` outside the array rank.
        AllMissingSliceError: some slice has no observed values. Checked before any write.
        StatisticTypeMismatchError: the statistic's value does not fit `data.dtype`.
    """
    data = require_masked(data, "substitute_inplace")
    check_axis(axis, data.ndim)
    ensure_observed(data, axis)

    mask = ma.getmaskarray(data)
    if not mask.any():
        return clear_mask(data)

    values = data.data
    for _, sel in iter_slices(data.shape, axis):
        slice_mask = mask[sel]
        if not slice_mask.any():
            continue
        observed = np.asarray(values[sel])[~slice_mask]
        fill = _coerce(statistic(observed), data.dtype)
        target = values[sel]
        if np.ndim(target) == 0:
            values[sel] = fill
        else:
            target[slice_mask] = fill
    return clear_mask(data)


def substitute(data, statistic: Callable[[np.ndarray], object], axis: Optional[int] = None) -> ma.MaskedArray:
    """Like `substitute_inplace`, on a copy; `data` is left untouched."""
    return substitute_inplace(trycopy(as_missing_array(data)), statistic, axis=axis)


def check_spread_policy(policy: str) -> None:
    if policy not in DEGENERATE_SPREAD_POLICIES:
        raise InvalidArgumentError(
            f"on_degenerate_spread must be one of {DEGENERATE_SPREAD_POLICIES}, got {policy!r}"
        )


def handle_degenerate_spread(what: str, axis: Optional[int], indices, policy: str) -> None:
    """
    Apply the degenerate-spread policy to the slices in `indices`.

    "fail" raises NumericDegeneracyError naming all of them. "propagate_nan" logs a
    warning and returns; the caller then writes NaN into those slices.
    """
    indices = list(indices)
    if not indices:
        return
    err = NumericDegeneracyError(what, axis=axis, indices=indices)
    if policy == "fail":
        raise err
    log_warning(f"{err.summary}; writing NaN there.")
