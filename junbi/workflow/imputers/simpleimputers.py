import numpy as np
import numpy.ma as ma
from sklearn.base import BaseEstimator, TransformerMixin

from junbi.workflow.missing import (
    as_missing_array,
    check_matrix_axis,
    clear_mask,
    require_masked,
    substitute_inplace,
)
from junbi.utils.utils import trycopy


def _zero(x):
    return 0


def _half_min_int(x):
    return x.min() // 2


def _half_min(x):
    return x.min() / 2


def impute_zero_inplace(data: ma.MaskedArray) -> ma.MaskedArray:
    """Replace missing cells with zero, writing into `data`."""
    return substitute_inplace(require_masked(data, "impute_zero_inplace"), _zero)


def impute_zero(data) -> ma.MaskedArray:
    """Replace missing cells with zero on a copy of `data`."""
    return impute_zero_inplace(trycopy(as_missing_array(data)))


def impute_min_inplace(data: ma.MaskedArray, axis=None) -> ma.MaskedArray:
    """
    Replace missing cells with the minimum observed value, writing into `data`.

    Args:
        data: Matrix with missing cells, e.g. samples x features.
        axis: None for the whole-matrix minimum, 0 per column, 1 per row.
    """
    check_matrix_axis(axis)
    return substitute_inplace(require_masked(data, "impute_min_inplace"), np.min, axis=axis)


def impute_min(data, axis=None) -> ma.MaskedArray:
    return impute_min_inplace(trycopy(as_missing_array(data)), axis=axis)


def impute_half_min_inplace(data: ma.MaskedArray, axis=None) -> ma.MaskedArray:
    """
    Replace missing cells with half the minimum observed value, writing into `data`.

    Integer arrays use floor division (minimum 3 gives 1), so the dtype is kept.
    """
    data = require_masked(data, "impute_half_min_inplace")
    check_matrix_axis(axis)
    statistic = _half_min_int if data.dtype.kind in "iu" else _half_min
    return substitute_inplace(data, statistic, axis=axis)


def impute_half_min(data, axis=None) -> ma.MaskedArray:
    return impute_half_min_inplace(trycopy(as_missing_array(data)), axis=axis)


def impute_median_cat_inplace(data: ma.MaskedArray) -> ma.MaskedArray:
    """
    Categorical imputation per column, writing into `data`:
        0: missing
        1: observed value below the column median
        2: observed value equal to or above the column median
    Columns with nothing observed become all 0.
    """
    data = require_masked(data, "impute_median_cat_inplace")
    if data.ndim != 2:
        raise ValueError(f"impute_median_cat expects a matrix, got {data.ndim} dimensions")
    mask = ma.getmaskarray(data)
    values = data.data
    for j in range(data.shape[1]):
        observed = ~mask[:, j]
        if not observed.any():
            values[:, j] = 0
            continue
        col = values[observed, j]
        med = np.median(col)
        values[observed, j] = np.where(col < med, 1, 2)
        values[~observed, j] = 0
    return clear_mask(data)


def impute_median_cat(data) -> ma.MaskedArray:
    return impute_median_cat_inplace(trycopy(as_missing_array(data)))


class _FunctionImputer(BaseEstimator, TransformerMixin):
    """
    sklearn-style shell over a functional imputer.

    These imputers are transductive: `fit` only checks parameters, `transform` does the
    work on whatever matrix it is given. Cells equal to `missing_values` (NaN by default,
    like the rest of a NaN-based sklearn pipeline) are treated as missing; MaskedArray
    inputs keep their own mask.
    """

    def fit(self, X, y=None):
        return self

    def _impute(self, X):
        raise NotImplementedError

    def transform(self, X):
        X = as_missing_array(X, getattr(self, "missing_values", None))
        return np.asarray(self._impute(X).data)

    def fit_transform(self, X, y=None):
        return self.fit(X).transform(X)


class ZeroImputer(_FunctionImputer):
    def __init__(self, missing_values=np.nan):
        self.missing_values = missing_values

    def _impute(self, X):
        return impute_zero(X)


class MinImputer(_FunctionImputer):
    def __init__(self, axis=None, missing_values=np.nan):
        self.axis = axis
        self.missing_values = missing_values

    def fit(self, X, y=None):
        check_matrix_axis(self.axis)
        return self

    def _impute(self, X):
        return impute_min(X, axis=self.axis)


class HalfMinImputer(MinImputer):
    def _impute(self, X):
        return impute_half_min(X, axis=self.axis)


class MedianCatImputer(_FunctionImputer):
    def __init__(self, missing_values=np.nan):
        self.missing_values = missing_values

    def _impute(self, X):
        return impute_median_cat(X)
