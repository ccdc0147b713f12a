"""
junbi - Unit Tests for the iterative SVD imputer
"""

import numpy as np
import numpy.ma as ma
import pytest

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.imputers.svdimputer import SVDImputer, impute_svd, impute_svd_inplace


class TestImputeSVD:
    """Tests for impute_svd"""

    def test_recovers_low_rank_matrix(self, lowrank):
        data, truth = lowrank
        mask = ma.getmaskarray(data)
        out = impute_svd(data, rank=2, tol=1e-14, max_iter=2000)
        np.testing.assert_allclose(out.data[mask], truth[mask], atol=0.05)

    def test_observed_values_bit_identical(self, lowrank):
        data, _ = lowrank
        keep = ~ma.getmaskarray(data)
        out = impute_svd(data, rank=2)
        np.testing.assert_array_equal(out.data[keep], data.data[keep])

    def test_does_not_mutate_input(self, lowrank):
        data, _ = lowrank
        saved_data, saved_mask = data.data.copy(), data.mask.copy()
        impute_svd(data)
        np.testing.assert_array_equal(data.data, saved_data)
        np.testing.assert_array_equal(data.mask, saved_mask)

    def test_growing_rank(self, lowrank):
        data, _ = lowrank
        out = impute_svd(data, max_iter=20)
        assert out.shape == data.shape
        assert np.isfinite(out.data).all()
        assert not ma.getmaskarray(out).any()

    def test_limits_clamp_imputed_cells(self, lowrank):
        data, _ = lowrank
        mask = ma.getmaskarray(data)
        out = impute_svd(data, rank=2, limits=(-0.1, 0.1))
        assert (out.data[mask] >= -0.1).all()
        assert (out.data[mask] <= 0.1).all()

    def test_zero_iterations_keeps_median_fill(self):
        data = ma.MaskedArray([[1.0, 2.0], [3.0, 0.0]], mask=[[False, False], [False, True]])
        out = impute_svd(data, max_iter=0)
        assert out[1, 1] == 2.0

    def test_no_missing_is_identity(self):
        data = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 7.0]])
        np.testing.assert_array_equal(impute_svd(data).data, data)

    def test_inplace_returns_same_object(self, lowrank):
        data, _ = lowrank
        assert impute_svd_inplace(data, rank=2) is data
        assert not ma.getmaskarray(data).any()

    @pytest.mark.parametrize("kwargs", [
        {"rank": 0},
        {"tol": -1.0},
        {"max_iter": -1},
        {"limits": (1.0, 0.0)},
        {"axis": 3},
    ])
    def test_invalid_arguments(self, lowrank, kwargs):
        data, _ = lowrank
        with pytest.raises(InvalidArgumentError):
            impute_svd(data, **kwargs)


class TestSVDImputer:
    """Tests for the SVDImputer estimator"""

    def test_convergence_history_trends_down(self, lowrank):
        data, _ = lowrank
        X = np.where(ma.getmaskarray(data), np.nan, data.data)
        imputer = SVDImputer(rank=2, tol=1e-14, max_iter=200)
        out = imputer.fit_transform(X)
        assert not np.isnan(out).any()
        assert imputer.n_iter_ == len(imputer.convergence_)
        assert imputer.convergence_[-1] < imputer.convergence_[0]

    def test_no_missing_runs_no_iteration(self):
        imputer = SVDImputer()
        imputer.fit_transform(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert imputer.n_iter_ == 0
        assert imputer.convergence_ == []
