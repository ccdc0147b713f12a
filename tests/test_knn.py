"""
junbi - Unit Tests for the nearest-neighbor imputer
"""

import numpy as np
import numpy.ma as ma
import pytest

from junbi.utils.errors import InvalidArgumentError
from junbi.workflow.imputers.knnimputer import KNNImputer, impute_knn, impute_knn_inplace

M = None


@pytest.fixture
def near_rows():
    return [
        [1.0, 2.0, 3.0],
        [1.1, 2.1, M],
        [5.0, 6.0, 7.0],
        [5.2, 6.1, 7.1],
    ]


class TestImputeKNN:
    """Tests for impute_knn"""

    def test_takes_nearest_row(self, near_rows):
        out = impute_knn(near_rows, k=1)
        assert out[1, 2] == pytest.approx(3.0)

    def test_observed_values_unchanged(self, near_rows):
        data = ma.MaskedArray(np.array([[v if v is not None else 0.0 for v in r] for r in near_rows]),
                              mask=[[v is None for v in r] for r in near_rows])
        out = impute_knn(data, k=2)
        keep = ~ma.getmaskarray(data)
        np.testing.assert_array_equal(out.data[keep], data.data[keep])
        assert out.shape == data.shape

    def test_inverse_distance_weights(self):
        data = [[0.0, 0.0], [1.0, M], [3.0, 10.0], [4.0, 20.0]]
        # Temporary fill of column 1 is 10, so row 1 is [1, 10]; its two nearest
        # neighbors are row 2 and row 0.
        out = impute_knn(data, k=2)
        d0 = np.hypot(1.0, 10.0)
        d2 = np.hypot(2.0, 0.0)
        expected = (0.0 / d0 + 10.0 / d2) / (1 / d0 + 1 / d2)
        assert out[1, 1] == pytest.approx(expected)

    def test_columns_as_observations(self, near_rows):
        rows = impute_knn(near_rows, k=1, axis=1)
        cols = impute_knn(np.array(near_rows, dtype=object).T, k=1, axis=0)
        np.testing.assert_allclose(cols.data.T, rows.data)

    def test_threshold_skip_keeps_temporary_mean(self):
        data = [[1.0, 2.0, M], [1.1, 2.1, M], [9.0, 9.0, 9.0], [8.0, 8.0, 8.0]]
        out = impute_knn(data, k=1, threshold=0.5)
        assert out[0, 2] == pytest.approx(8.5)
        assert out[1, 2] == pytest.approx(8.5)

    def test_duplicate_observation(self):
        data = [[1.0, 2.0, 5.0], [1.0, 2.0, M], [0.0, 0.0, 0.0], [10.0, 10.0, 10.0]]
        out = impute_knn(data, k=1)
        assert out[1, 2] == pytest.approx(5.0)

    def test_manhattan_metric(self, near_rows):
        out = impute_knn(near_rows, k=1, metric="manhattan")
        assert out[1, 2] == pytest.approx(3.0)

    def test_deterministic(self, near_rows):
        np.testing.assert_array_equal(impute_knn(near_rows, k=2).data, impute_knn(near_rows, k=2).data)

    def test_no_missing_is_identity(self):
        data = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 7.0]])
        np.testing.assert_array_equal(impute_knn(data).data, data)

    def test_inplace_needs_float(self):
        with pytest.raises(InvalidArgumentError):
            impute_knn_inplace(ma.MaskedArray([[1, 2]], mask=[[False, True]]))

    def test_inplace_returns_same_object(self, near_rows):
        data = ma.MaskedArray([[1.0, 2.0], [1.5, 0.0], [4.0, 5.0]], mask=[[0, 0], [0, 1], [0, 0]])
        assert impute_knn_inplace(data) is data
        assert data[1, 1] == pytest.approx(2.0)


class TestKNNValidation:
    """Tests for parameter validation"""

    @pytest.mark.parametrize("kwargs", [
        {"k": 0},
        {"threshold": 0.0},
        {"threshold": 1.0},
        {"metric": "cosine"},
        {"metric": "minkowski", "p": 0.5},
        {"axis": None},
    ])
    def test_invalid_arguments(self, near_rows, kwargs):
        with pytest.raises(InvalidArgumentError):
            impute_knn(near_rows, **kwargs)

    def test_k_must_be_smaller_than_observations(self, near_rows):
        with pytest.raises(InvalidArgumentError):
            impute_knn(near_rows, k=4)


class TestKNNImputer:
    """Tests for the KNNImputer estimator"""

    def test_fit_transform(self):
        X = np.array([[1.0, 2.0, 3.0], [1.1, 2.1, np.nan], [5.0, 6.0, 7.0], [5.2, 6.1, 7.1]])
        out = KNNImputer(n_neighbors=1).fit_transform(X)
        assert out[1, 2] == pytest.approx(3.0)
        assert not np.isnan(out).any()

    def test_fit_validates(self):
        with pytest.raises(InvalidArgumentError):
            KNNImputer(n_neighbors=0).fit(np.zeros((3, 3)))
