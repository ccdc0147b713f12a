import numpy as np
import numpy.ma as ma
from sklearn.base import BaseEstimator, TransformerMixin

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.missing import (
    as_float_copy,
    as_missing_array,
    check_matrix_axis,
    check_spread_policy,
    clear_mask,
    ensure_observed,
    handle_degenerate_spread,
    iter_slices,
    require_masked,
)


def _check_min_prob_args(q, axis, tune_sigma, on_degenerate_spread) -> None:
    if not 0 < q < 1:
        raise InvalidArgumentError(f"q must be within (0, 1), got {q}")
    if not 0 <= tune_sigma <= 1:
        raise InvalidArgumentError(f"tune_sigma must be within [0, 1], got {tune_sigma}")
    check_matrix_axis(axis, allow_none=False)
    check_spread_policy(on_degenerate_spread)


def _pooled_sd(values: np.ndarray, mask: np.ndarray, axis: int) -> float:
    """Median sample SD over slices with more than half of their cells observed."""
    sds = []
    for _, sel in iter_slices(values.shape, axis):
        observed = ~mask[sel]
        if observed.sum() / observed.size <= 0.5:
            continue
        with np.errstate(invalid="ignore", divide="ignore"):
            sd = np.std(values[sel][observed], ddof=1) if observed.sum() > 1 else np.nan
        if np.isfinite(sd):
            sds.append(sd)
    if not sds:
        return np.nan
    return float(np.median(sds))


def impute_min_prob_inplace(
    data: ma.MaskedArray,
    q: float = 0.01,
    *,
    axis: int,
    tune_sigma: float = 1.0,
    rng=None,
    on_degenerate_spread: str = "fail",
) -> ma.MaskedArray:
    """
    Probabilistic left-censored imputation (MinProb), writing into `data`.

    Each slice along `axis` is one sample. Its missing cells are drawn from
    N(q_low, sd), where q_low is the sample's `q`-quantile and sd is the median SD of
    the samples with more than 50% observed values, times `tune_sigma`.

    Args:
        data: Float matrix with missing cells, typically log-scale intensities.
        q: Low quantile in (0, 1) used as the center of the draws.
        axis: 0 if each column is a sample, 1 if each row is. Required.
        tune_sigma: Spread multiplier in [0, 1].
        rng: Seed or numpy Generator.
        on_degenerate_spread: Policy when the pooled SD is zero or undefined.

    Raises:
        AllMissingSliceError: a sample has no observed values.
        NumericDegeneracyError: degenerate pooled SD under the "fail" policy.
        Both are checked before any write.
    """
    data = require_masked(data, "impute_min_prob_inplace", floating=True)
    _check_min_prob_args(q, axis, tune_sigma, on_degenerate_spread)
    rng = np.random.default_rng(rng)

    mask = ma.getmaskarray(data).copy()
    if not mask.any():
        return clear_mask(data)
    ensure_observed(data, axis)

    values = data.data
    slices = list(iter_slices(data.shape, axis))
    q_low = [np.quantile(values[sel][~mask[sel]], q) for _, sel in slices]

    sd = _pooled_sd(values, mask, axis)
    if not np.isfinite(sd) or sd == 0:
        handle_degenerate_spread(
            "pooled standard deviation", axis,
            [idx for idx, sel in slices if mask[sel].any()], on_degenerate_spread,
        )
        for _, sel in slices:
            values[sel][mask[sel]] = np.nan
        return clear_mask(data)
    sd *= tune_sigma

    for (_, sel), center in zip(slices, q_low):
        slice_mask = mask[sel]
        if not slice_mask.any():
            continue
        target = values[sel]
        target[slice_mask] = rng.normal(center, sd, size=target.size)[slice_mask]
    return clear_mask(data)


def impute_min_prob(
    data,
    q: float = 0.01,
    *,
    axis: int,
    tune_sigma: float = 1.0,
    rng=None,
    on_degenerate_spread: str = "fail",
) -> ma.MaskedArray:
    """MinProb on a float64 copy; see `impute_min_prob_inplace`."""
    _check_min_prob_args(q, axis, tune_sigma, on_degenerate_spread)
    return impute_min_prob_inplace(
        as_float_copy(data), q, axis=axis, tune_sigma=tune_sigma,
        rng=np.random.default_rng(rng), on_degenerate_spread=on_degenerate_spread,
    )


class MinProbImputer(BaseEstimator, TransformerMixin):
    """
    Probabilistic left-censored imputation (MinProb).
    Replaces missing cells of each sample by drawing from N(q_low, sd), where q_low is
    the sample's low quantile and sd the pooled median sample SD times tune_sigma.
    """

    def __init__(self, quantile=0.01, axis=0, tune_sigma=1.0, random_state=None,
                 on_degenerate_spread="fail", missing_values=np.nan):
        """
        Args:
            quantile (float): Low-tail quantile per sample (e.g., 0.01).
            axis (int): 0 if samples are columns, 1 if they are rows.
            tune_sigma (float): Fraction of the pooled SD used as sampling SD.
            random_state (int|None): RNG seed for reproducibility.
            on_degenerate_spread (str): "fail" or "propagate_nan".
            missing_values: Marker treated as missing in plain arrays.
        """
        self.quantile = quantile
        self.axis = axis
        self.tune_sigma = tune_sigma
        self.random_state = random_state
        self.on_degenerate_spread = on_degenerate_spread
        self.missing_values = missing_values

    def fit(self, X, y=None):
        _check_min_prob_args(self.quantile, self.axis, self.tune_sigma, self.on_degenerate_spread)
        self._rng = np.random.default_rng(self.random_state)
        return self

    def transform(self, X):
        out = impute_min_prob(
            as_missing_array(X, self.missing_values), self.quantile, axis=self.axis,
            tune_sigma=self.tune_sigma, rng=self._rng,
            on_degenerate_spread=self.on_degenerate_spread,
        )
        return np.asarray(out.data)

    def fit_transform(self, X, y=None):
        return self.fit(X).transform(X)
