"""Exception types raised by junbi.

Every error derives from `JunbiError` and from the builtin a caller would catch for the
same situation, so `except ValueError` keeps working around parameter mistakes.
"""

from typing import Optional, Sequence

from junbi.utils.compact_repr import compact_repr


def _axis_label(axis: Optional[int]) -> str:
    if axis is None:
        return "the whole array"
    return {0: "columns", 1: "rows"}.get(axis, f"slices along axis {axis}")


class JunbiError(Exception):
    """Base class for junbi errors."""


class InvalidArgumentError(JunbiError, ValueError):
    """A parameter is outside its valid range."""


class InvalidDimensionError(JunbiError, ValueError):
    """The requested axis does not exist for the array."""

    def __init__(self, axis: int, ndim: int):
        self.axis = axis
        self.ndim = ndim
        super().__init__(f"axis {axis} is out of bounds for an array of dimension {ndim}.")


class AllMissingSliceError(JunbiError, ValueError):
    """A statistic was requested over a slice with no observed values."""

    def __init__(self, axis: Optional[int], indices: Sequence[int] = ()):
        self.axis = axis
        self.indices = list(indices)
        if axis is None:
            where = "All values in the array are missing"
        else:
            where = f"All values are missing in {_axis_label(axis)} {compact_repr.repr(self.indices)}"
        super().__init__(
            f"{where}. This usually happens when there is a row or column with all "
            "missing values along the chosen axis. Please check your data."
        )


class StatisticTypeMismatchError(JunbiError, TypeError):
    """A statistic's value cannot be stored in the array's dtype without loss."""

    def __init__(self, value, dtype):
        self.value = value
        self.dtype = dtype
        super().__init__(
            f"Cannot store statistic value {value!r} in an array of dtype {dtype}. "
            "Use a statistic returning a compatible value, or promote the data to a "
            "floating-point dtype first."
        )


class NumericDegeneracyError(JunbiError, ArithmeticError):
    """A spread estimate is zero or undefined, so the distribution is degenerate."""

    def __init__(self, what: str, axis: Optional[int] = None, indices: Sequence[int] = ()):
        self.axis = axis
        self.indices = list(indices)
        where = ""
        if self.indices:
            where = f" in {_axis_label(axis)} {compact_repr.repr(self.indices)}"
        self.summary = f"The {what} is zero or undefined{where}"
        super().__init__(
            f"{self.summary}, which implies the data is constant "
            "or too sparse there. Pass on_degenerate_spread='propagate_nan' to emit NaN "
            "instead, or check your data."
        )


class CapabilityUnavailableError(JunbiError, RuntimeError):
    """A table-level function was called without a usable table backend."""
