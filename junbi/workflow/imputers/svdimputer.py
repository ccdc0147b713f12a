from typing import List, Optional, Tuple

import numpy as np
import numpy.ma as ma
from sklearn.base import BaseEstimator, TransformerMixin

from junbi.utils.errors import InvalidArgumentError
from junbi.utils.utils import log_debug
from junbi.workflow.missing import (
    as_float_copy,
    as_missing_array,
    check_matrix_axis,
    clear_mask,
    require_masked,
    substitute_inplace,
)


def _check_svd_args(rank, tol, max_iter, limits, axis) -> None:
    if rank is not None and rank < 1:
        raise InvalidArgumentError(f"rank must be >= 1, got {rank}")
    if tol < 0:
        raise InvalidArgumentError(f"tol must be >= 0, got {tol}")
    if max_iter < 0:
        raise InvalidArgumentError(f"max_iter must be >= 0, got {max_iter}")
    if limits is not None:
        low, high = limits
        if low > high:
            raise InvalidArgumentError(f"limits must be (low, high) with low <= high, got {limits}")
    check_matrix_axis(axis)


def _iterate_svd(
    data: ma.MaskedArray,
    rank: Optional[int],
    tol: float,
    max_iter: int,
    limits: Optional[Tuple[float, float]],
    axis: Optional[int],
) -> Tuple[int, List[float]]:
    """
    Core loop; fills `data` in place and returns (iterations run, convergence history).

    The convergence statistic at each iteration is
        sum((old - new)^2) / sum(old^2)
    over the originally missing cells, where `old` is the current fill and `new` the
    reconstruction. A zero denominator makes it non-finite, which never stops the loop.
    """
    n, p = data.shape
    cap = max(min(n - 1, p - 1), 1)
    k = 0 if rank is None else min(rank, cap)

    mmask = ma.getmaskarray(data).copy()
    omask = ~mmask

    substitute_inplace(data, np.median, axis=axis)
    X = data.data
    history: List[float] = []
    if not mmask.any():
        return 0, history

    n_iter = 0
    for it in range(1, max_iter + 1):
        n_iter = it
        if rank is None:
            k = min(k + 1, cap)

        U, S, Vt = np.linalg.svd(X, full_matrices=False)
        S[k:] = 0.0
        recon = (U * S) @ Vt
        if limits is not None:
            np.clip(recon, limits[0], limits[1], out=recon)

        old = X[mmask]
        new = recon[mmask]
        with np.errstate(divide="ignore", invalid="ignore"):
            conv = float(np.sum((old - new) ** 2) / np.sum(old ** 2))
        mae = float(np.mean(np.abs(X[omask] - recon[omask]))) if omask.any() else float("nan")
        history.append(conv)
        log_debug(f"SVD iteration {it}: rank={k}, MAE(observed)={mae:.6g}, convergence={conv:.6g}")

        X[mmask] = new
        if np.isfinite(conv) and conv < tol:
            break

    return n_iter, history


def impute_svd_inplace(
    data: ma.MaskedArray,
    rank: Optional[int] = None,
    tol: float = 1e-10,
    max_iter: int = 100,
    limits: Optional[Tuple[float, float]] = None,
    axis: Optional[int] = None,
) -> ma.MaskedArray:
    """
    Iterative low-rank SVD imputation, writing into `data` (float MaskedArray).

    Missing cells start at the median (whole matrix, or per slice along `axis`), then
    are repeatedly replaced by a rank-k reconstruction of the current matrix. Observed
    cells are never overwritten.

    Args:
        data: Matrix with missing cells.
        rank: Rank of the reconstruction. When None the rank starts at 1 and grows by
            one per iteration. Always capped at min(n_rows, n_cols) - 1.
        tol: Stop once the relative change of the missing cells drops below this.
        max_iter: Iteration budget.
        limits: Optional (low, high) clamp applied to every reconstruction.
        axis: Axis of the initial median fill; None for the whole-matrix median.
    """
    data = require_masked(data, "impute_svd_inplace", floating=True)
    _check_svd_args(rank, tol, max_iter, limits, axis)
    _iterate_svd(data, rank, tol, max_iter, limits, axis)
    return clear_mask(data)


def impute_svd(data, rank=None, tol=1e-10, max_iter=100, limits=None, axis=None) -> ma.MaskedArray:
    """Iterative low-rank SVD imputation on a float64 copy; see `impute_svd_inplace`."""
    _check_svd_args(rank, tol, max_iter, limits, axis)
    return impute_svd_inplace(as_float_copy(data), rank=rank, tol=tol, max_iter=max_iter, limits=limits, axis=axis)


class SVDImputer(BaseEstimator, TransformerMixin):
    """
    Iterative SVD imputer.

    Attributes (after transform):
        n_iter_ (int): Iterations run on the last matrix.
        convergence_ (list[float]): Convergence statistic per iteration.
    """

    def __init__(self, rank=None, tol=1e-10, max_iter=100, limits=None, axis=None, missing_values=np.nan):
        self.rank = rank
        self.tol = tol
        self.max_iter = max_iter
        self.limits = limits
        self.axis = axis
        self.missing_values = missing_values

    def fit(self, X, y=None):
        _check_svd_args(self.rank, self.tol, self.max_iter, self.limits, self.axis)
        return self

    def transform(self, X):
        work = as_float_copy(as_missing_array(X, self.missing_values))
        self.n_iter_, self.convergence_ = _iterate_svd(
            work, self.rank, self.tol, self.max_iter, self.limits, self.axis
        )
        return np.asarray(clear_mask(work).data)

    def fit_transform(self, X, y=None):
        return self.fit(X).transform(X)
