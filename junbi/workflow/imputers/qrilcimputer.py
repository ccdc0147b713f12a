import numpy as np
import numpy.ma as ma
import statsmodels.api as sm
from scipy.stats import norm, truncnorm
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

_N_LEVELS = 100


def _check_qrilc_args(axis, tune_sigma, eps, on_degenerate_spread) -> None:
    check_matrix_axis(axis, allow_none=False)
    if not 0 <= tune_sigma <= 1:
        raise InvalidArgumentError(f"tune_sigma must be within [0, 1], got {tune_sigma}")
    if not 0 <= eps < 0.01:
        raise InvalidArgumentError(f"eps must be within [0, 0.01), got {eps}")
    check_spread_policy(on_degenerate_spread)


def _fit_slice(values: np.ndarray, missing: np.ndarray, eps: float):
    """
    Estimate the complete-data normal of one slice from its observed values.

    The observed quantiles are regressed on standard-normal quantiles shifted by the
    missing fraction, so the fit describes the distribution the slice would have if
    its lowest `pNA` share had been recorded.

    Returns:
        (mean, sd, upper_bound), with sd = |slope| and the bound at the (pNA + eps)
        quantile of N(mean, sd). Any of them may be non-finite for degenerate input.
    """
    p_na = missing.sum() / missing.size
    q_normal = norm.ppf(np.linspace(p_na + eps, 0.99 + eps, _N_LEVELS))
    q_sample = np.quantile(values[~missing], np.linspace(eps, 0.99 + eps, _N_LEVELS))

    if not np.all(np.isfinite(q_normal)) or np.ptp(q_normal) == 0:
        return np.nan, np.nan, np.nan
    if not np.all(np.isfinite(q_sample)) or np.ptp(q_sample) == 0:
        return np.nan, np.nan, np.nan

    fit = sm.OLS(q_sample, sm.add_constant(q_normal, has_constant="add")).fit()
    mean, slope = fit.params
    sd = abs(slope)
    with np.errstate(invalid="ignore", divide="ignore"):
        bound = norm.ppf(p_na + eps, loc=mean, scale=sd) if sd > 0 else np.nan
    return float(mean), float(sd), float(bound)


def impute_qrilc_inplace(
    data: ma.MaskedArray,
    *,
    axis: int,
    tune_sigma: float = 1.0,
    eps: float = 0.005,
    rng=None,
    on_degenerate_spread: str = "fail",
) -> ma.MaskedArray:
    """
    Quantile Regression Imputation of Left-Censored data (QRILC), writing into `data`.

    Each slice along `axis` is one sample. Its missing cells are assumed to be values
    below a detection limit: they are drawn from the sample's estimated complete-data
    normal, scaled by `tune_sigma` and truncated above at the quantile matching the
    sample's missing fraction.

    Args:
        data: Float matrix with missing cells, typically log-scale intensities.
        axis: 0 if each column is a sample, 1 if each row is. Required.
        tune_sigma: Spread multiplier in [0, 1]; 0 fills with min(mean, bound).
        eps: Offset into the quantile ranges, in [0, 0.01).
        rng: Seed or numpy Generator.
        on_degenerate_spread: "fail" raises NumericDegeneracyError for samples whose
            fitted spread is zero or undefined; "propagate_nan" warns and writes NaN.

    Raises:
        AllMissingSliceError: a sample has no observed values. Checked before any write.
        NumericDegeneracyError: degenerate samples under the "fail" policy, checked
            before any write.
    """
    data = require_masked(data, "impute_qrilc_inplace", floating=True)
    _check_qrilc_args(axis, tune_sigma, eps, on_degenerate_spread)
    rng = np.random.default_rng(rng)

    mask = ma.getmaskarray(data).copy()
    if not mask.any():
        return clear_mask(data)
    ensure_observed(data, axis)

    values = data.data
    fits = []
    degenerate = []
    for idx, sel in iter_slices(data.shape, axis):
        mean, sd, bound = _fit_slice(values[sel], mask[sel], eps)
        ok = np.isfinite(mean) and np.isfinite(sd) and sd > 0 and np.isfinite(bound)
        if mask[sel].any() and not ok:
            degenerate.append(idx)
        fits.append((sel, mean, sd, bound))

    handle_degenerate_spread("fitted standard deviation", axis, degenerate, on_degenerate_spread)

    bad = set(degenerate)
    for idx, (sel, mean, sd, bound) in enumerate(fits):
        slice_mask = mask[sel]
        if not slice_mask.any():
            continue
        target = values[sel]
        if idx in bad:
            target[slice_mask] = np.nan
        elif tune_sigma == 0:
            target[slice_mask] = min(mean, bound)
        else:
            scale = sd * tune_sigma
            draws = truncnorm.rvs(
                -np.inf, (bound - mean) / scale, loc=mean, scale=scale,
                size=target.size, random_state=rng,
            )
            target[slice_mask] = draws[slice_mask]
    return clear_mask(data)


def impute_qrilc(
    data,
    *,
    axis: int,
    tune_sigma: float = 1.0,
    eps: float = 0.005,
    rng=None,
    on_degenerate_spread: str = "fail",
) -> ma.MaskedArray:
    """QRILC on a float64 copy; see `impute_qrilc_inplace`."""
    _check_qrilc_args(axis, tune_sigma, eps, on_degenerate_spread)
    return impute_qrilc_inplace(
        as_float_copy(data), axis=axis, tune_sigma=tune_sigma, eps=eps,
        rng=np.random.default_rng(rng), on_degenerate_spread=on_degenerate_spread,
    )


class QRILCImputer(BaseEstimator, TransformerMixin):
    """
    QRILC imputer for left-censored (MNAR) data.

    The generator is created in `fit`, so repeated `transform` calls continue the same
    random stream; refit to restart it.
    """

    def __init__(self, axis=0, tune_sigma=1.0, eps=0.005, random_state=None,
                 on_degenerate_spread="fail", missing_values=np.nan):
        self.axis = axis
        self.tune_sigma = tune_sigma
        self.eps = eps
        self.random_state = random_state
        self.on_degenerate_spread = on_degenerate_spread
        self.missing_values = missing_values

    def fit(self, X, y=None):
        _check_qrilc_args(self.axis, self.tune_sigma, self.eps, self.on_degenerate_spread)
        self._rng = np.random.default_rng(self.random_state)
        return self

    def transform(self, X):
        out = impute_qrilc(
            as_missing_array(X, self.missing_values), axis=self.axis,
            tune_sigma=self.tune_sigma, eps=self.eps, rng=self._rng,
            on_degenerate_spread=self.on_degenerate_spread,
        )
        return np.asarray(out.data)

    def fit_transform(self, X, y=None):
        return self.fit(X).transform(X)
