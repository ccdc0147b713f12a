"""
junbi - Unit Tests for the simple imputers
"""

import numpy as np
import numpy.ma as ma
import pytest

from junbi.utils.errors import AllMissingSliceError, InvalidArgumentError
from junbi.workflow.imputers.simpleimputers import (
    HalfMinImputer,
    MedianCatImputer,
    MinImputer,
    ZeroImputer,
    impute_half_min,
    impute_median_cat,
    impute_min,
    impute_min_inplace,
    impute_zero,
    impute_zero_inplace,
)


class TestImputeZero:
    """Tests for impute_zero"""

    def test_example(self):
        out = impute_zero([[1, None, 3], [4, 5, None]])
        np.testing.assert_array_equal(out.data, [[1, 0, 3], [4, 5, 0]])
        assert out.dtype == np.int64

    def test_inplace_returns_same_object(self):
        data = ma.MaskedArray([[1.0, 2.0]], mask=[[False, True]])
        assert impute_zero_inplace(data) is data
        np.testing.assert_array_equal(data.data, [[1.0, 0.0]])
        assert not ma.getmaskarray(data).any()

    def test_inplace_needs_masked_array(self):
        with pytest.raises(InvalidArgumentError):
            impute_zero_inplace(np.array([[1.0, 2.0]]))

    def test_no_missing_is_identity(self):
        data = np.array([[1.0, 2.0], [3.0, 4.0]])
        np.testing.assert_array_equal(impute_zero(data).data, data)


class TestImputeMin:
    """Tests for impute_min"""

    def test_row_wise_example(self):
        out = impute_min([[1, None, 3], [4, 5, None], [7, 8, 9]], axis=1)
        assert out[0, 1] == 1
        assert out[1, 2] == 4
        assert out[2, 2] == 9

    def test_whole_matrix(self):
        out = impute_min([[1, None, 3], [4, 5, None]])
        np.testing.assert_array_equal(out.data, [[1, 1, 3], [4, 5, 1]])

    def test_all_missing_slice(self):
        with pytest.raises(AllMissingSliceError):
            impute_min([[None, 1], [None, 2]], axis=0)

    def test_value_variant_does_not_mutate(self):
        data = ma.MaskedArray([[1.0, 9.0], [3.0, 4.0]], mask=[[False, True], [False, False]])
        saved_data, saved_mask = data.data.copy(), data.mask.copy()
        impute_min(data, axis=0)
        np.testing.assert_array_equal(data.data, saved_data)
        np.testing.assert_array_equal(data.mask, saved_mask)

    def test_inplace_observed_values_unchanged(self):
        data = ma.MaskedArray([[1.0, 9.0], [3.0, 4.0]], mask=[[False, True], [False, False]])
        impute_min_inplace(data, axis=0)
        np.testing.assert_array_equal(data.data, [[1.0, 4.0], [3.0, 4.0]])


class TestImputeHalfMin:
    """Tests for impute_half_min"""

    def test_integer_floor_division(self):
        out = impute_half_min([[3, None], [5, 6]])
        assert out[0, 1] == 1
        assert out.dtype == np.int64

    def test_float_true_division(self):
        out = impute_half_min([[3.0, None], [5.0, 6.0]])
        assert out[0, 1] == 1.5


class TestImputeMedianCat:
    """Tests for impute_median_cat"""

    def test_column_categories(self):
        out = impute_median_cat([[1, None], [4, None], [7, None]])
        np.testing.assert_array_equal(out.data[:, 0], [1, 2, 2])
        np.testing.assert_array_equal(out.data[:, 1], [0, 0, 0])

    def test_missing_becomes_zero(self):
        out = impute_median_cat([[1.0], [None], [3.0], [5.0]])
        np.testing.assert_array_equal(out.data[:, 0], [1, 0, 2, 2])


class TestEstimators:
    """Tests for the sklearn-style wrappers"""

    def test_zero_imputer_nan_marker(self):
        out = ZeroImputer().fit_transform(np.array([[1.0, np.nan]]))
        np.testing.assert_array_equal(out, [[1.0, 0.0]])

    def test_min_imputer_axis(self):
        X = np.array([[1.0, np.nan], [2.0, 5.0], [np.nan, 7.0]])
        out = MinImputer(axis=0).fit_transform(X)
        np.testing.assert_array_equal(out, [[1.0, 5.0], [2.0, 5.0], [1.0, 7.0]])

    def test_half_min_imputer(self):
        out = HalfMinImputer().fit_transform(np.array([[4.0, np.nan]]))
        np.testing.assert_array_equal(out, [[4.0, 2.0]])

    def test_median_cat_imputer(self):
        out = MedianCatImputer().fit_transform(np.array([[1.0], [np.nan], [3.0]]))
        np.testing.assert_array_equal(out, [[1.0], [0.0], [2.0]])

    def test_min_imputer_rejects_bad_axis(self):
        with pytest.raises(InvalidArgumentError):
            MinImputer(axis=2).fit(np.zeros((2, 2)))

    def test_shape_is_preserved(self):
        X = np.array([[1.0, np.nan, 3.0], [np.nan, 5.0, 6.0]])
        assert ZeroImputer().fit_transform(X).shape == X.shape
