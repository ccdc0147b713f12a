import numpy as np
import numpy.ma as ma
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.neighbors import KDTree

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.missing import (
    as_float_copy,
    as_missing_array,
    check_matrix_axis,
    clear_mask,
    require_masked,
    substitute_inplace,
)

# Minkowski family only; KDTree needs a true metric with a p-norm structure.
_METRICS = {
    "euclidean": ("minkowski", 2),
    "manhattan": ("minkowski", 1),
    "cityblock": ("minkowski", 1),
    "chebyshev": ("chebyshev", None),
    "minkowski": ("minkowski", None),
}


def _resolve_metric(metric: str, p: float):
    key = str(metric).lower()
    if key not in _METRICS:
        raise InvalidArgumentError(
            f"Unknown distance metric '{metric}'. Options: {', '.join(sorted(_METRICS))}"
        )
    name, fixed_p = _METRICS[key]
    if name == "chebyshev":
        return {"metric": "chebyshev"}
    p = fixed_p if fixed_p is not None else p
    if p is None or p < 1:
        raise InvalidArgumentError(f"Minkowski p must be >= 1, got {p}")
    return {"metric": "minkowski", "p": p}


def _check_knn_args(k: int, threshold: float, axis) -> None:
    if k < 1:
        raise InvalidArgumentError("The number of nearest neighbors should be greater than 0")
    if not 0 < threshold < 1:
        raise InvalidArgumentError("Missing neighbors threshold should be within 0 to 1")
    check_matrix_axis(axis, allow_none=False)


def impute_knn_inplace(
    data: ma.MaskedArray,
    k: int = 1,
    threshold: float = 0.5,
    axis: int = 1,
    metric: str = "euclidean",
    p: float = 2,
) -> ma.MaskedArray:
    """
    k-nearest-neighbor imputation, writing into `data` (float MaskedArray).

    Observations are compared to each other through a KD-tree built on a temporary,
    fully observed copy in which every coordinate is filled with its mean over the
    observations. Each missing coordinate of an observation then receives the
    inverse-distance weighted mean of its k nearest neighbors' values at that
    coordinate, ignoring neighbors that were missing there too.

    A coordinate whose neighbors are missing in more than `threshold` of the k cases is
    left at the temporary mean. A weighted mean whose weight sum is zero or not finite
    (another observation at distance zero) is skipped the same way.

    Args:
        data: Matrix with missing cells.
        k: Number of neighbors, not counting the observation itself.
        threshold: Largest tolerated fraction of missing neighbors, in (0, 1).
        axis: 1 when rows are the observations, 0 when columns are.
        metric: "euclidean", "manhattan" (or "cityblock"), "chebyshev", "minkowski".
        p: Order of the Minkowski metric, only read for metric="minkowski".
    """
    data = require_masked(data, "impute_knn_inplace", floating=True)
    _check_knn_args(k, threshold, axis)
    tree_kwargs = _resolve_metric(metric, p)

    # Observations as rows; a transpose view writes through to `data`.
    X = data if axis == 1 else data.T
    n_obs = X.shape[0]
    if k >= n_obs:
        raise InvalidArgumentError(f"k={k} needs more than {k} observations, got {n_obs}")

    missing = ma.getmaskarray(X).copy()
    if not missing.any():
        return clear_mask(data)

    # Temporary fill: each coordinate gets its mean over observations (per column of X).
    substitute_inplace(X, np.mean, axis=0)
    values = X.data

    tree = KDTree(values, **tree_kwargs)
    targets = np.flatnonzero(missing.any(axis=1))
    dists, idxs = tree.query(values[targets], k=k + 1, return_distance=True)

    for row, (dist, idx) in enumerate(zip(dists, idxs)):
        j = targets[row]
        # The observation itself is at distance 0 and comes first; a duplicate
        # observation can tie with it, so drop it by index rather than by position.
        assert dist[0] == 0, f"Nearest neighbor of observation {j} is not itself"
        keep = idx != j
        nbr_idx = idx[keep][:k]
        nbr_dist = dist[keep][:k]

        for i in np.flatnonzero(missing[j]):
            nbr_missing = missing[nbr_idx, i]
            if nbr_missing.sum() / k > threshold:
                continue
            with np.errstate(divide="ignore"):
                weights = 1.0 / nbr_dist[~nbr_missing]
            w_sum = weights.sum()
            if not np.isfinite(w_sum) or w_sum == 0:
                continue
            values[j, i] = np.dot(weights, values[nbr_idx[~nbr_missing], i]) / w_sum

    return clear_mask(data)


def impute_knn(data, k: int = 1, threshold: float = 0.5, axis: int = 1, metric: str = "euclidean", p: float = 2) -> ma.MaskedArray:
    """k-nearest-neighbor imputation on a float64 copy; see `impute_knn_inplace`."""
    _check_knn_args(k, threshold, axis)
    return impute_knn_inplace(as_float_copy(data), k=k, threshold=threshold, axis=axis, metric=metric, p=p)


class KNNImputer(BaseEstimator, TransformerMixin):
    """
    Inverse-distance weighted kNN imputer over a KD-tree.

    Unlike sklearn's KNNImputer, distances come from a mean-filled copy of the whole
    matrix, and coordinates with too many missing neighbors keep that mean fill.

    Attributes:
        n_neighbors (int): Neighbors used per observation.
        threshold (float): Maximum fraction of missing neighbors per coordinate.
        axis (int): 1 if rows are observations, 0 if columns are.
    """

    def __init__(self, n_neighbors=1, threshold=0.5, axis=1, metric="euclidean", p=2, missing_values=np.nan):
        self.n_neighbors = n_neighbors
        self.threshold = threshold
        self.axis = axis
        self.metric = metric
        self.p = p
        self.missing_values = missing_values

    def fit(self, X, y=None):
        _check_knn_args(self.n_neighbors, self.threshold, self.axis)
        _resolve_metric(self.metric, self.p)
        return self

    def transform(self, X):
        X = as_missing_array(X, self.missing_values)
        out = impute_knn(X, k=self.n_neighbors, threshold=self.threshold,
                         axis=self.axis, metric=self.metric, p=self.p)
        return np.asarray(out.data)

    def fit_transform(self, X, y=None):
        return self.fit(X).transform(X)
