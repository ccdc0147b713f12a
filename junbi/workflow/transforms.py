import numpy as np
import numpy.ma as ma

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.missing import as_float_copy, check_matrix_axis


def log_tx(data, base: float = 2, constant: float = 0) -> ma.MaskedArray:
    """
    Log transform, log_base(x + constant).

    Parameters:
        data: Matrix; masked cells stay masked.
        base (float): Logarithm base, positive and not 1.
        constant (float): Shift added before the logarithm, e.g. 1 for data with zeros.

    Raises:
        InvalidArgumentError: an observed value is not positive after the shift, or the
            base is invalid.
    """
    if base <= 0 or base == 1:
        raise InvalidArgumentError(f"Logarithm base must be positive and different from 1, got {base}")
    arr = as_float_copy(data)
    mask = ma.getmaskarray(arr)
    shifted = arr.data + constant
    if np.any(shifted[~mask] <= 0) or np.any(np.isnan(shifted[~mask])):
        raise InvalidArgumentError(
            "Matrix has non-positive values even after adding constant. Please remove "
            "such values before transforming."
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.log(shifted) / np.log(base)
    return ma.MaskedArray(np.where(mask, arr.data, out), mask=mask.copy())


def meancenter_tx(data, axis: int = 0) -> ma.MaskedArray:
    """Subtract the mean of the observed values along `axis` (0: column means, 1: row means)."""
    check_matrix_axis(axis, allow_none=False)
    arr = as_float_copy(data)
    mask = ma.getmaskarray(arr)
    means = arr.mean(axis=axis, keepdims=True).filled(np.nan)
    return ma.MaskedArray(np.where(mask, arr.data, arr.data - means), mask=mask.copy())
