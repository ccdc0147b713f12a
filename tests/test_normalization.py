"""
junbi - Unit Tests for normalization
"""

import numpy as np
import numpy.ma as ma
import pytest

from junbi.utils.errors import InvalidArgumentError, NumericDegeneracyError
from junbi.workflow.normalizers.normalization import huberize, huberloss, intnorm, pqnorm, quantilenorm


class TestIntnorm:
    """Tests for intnorm"""

    def test_rows(self, norm_mat):
        out = intnorm(norm_mat)
        np.testing.assert_allclose(out.data[1], [0.333333, 0.142857, 0.238095, 0.0714286, 0.214286], rtol=1e-5)
        np.testing.assert_allclose(out.data.sum(axis=1), 1.0)

    def test_columns(self, norm_mat):
        out = intnorm(norm_mat, axis=0)
        np.testing.assert_allclose(out.data.sum(axis=0), 1.0)

    def test_lambda_scales_totals(self, norm_mat):
        out = intnorm(norm_mat, lam=2.0)
        np.testing.assert_allclose(out.data.sum(axis=1), 0.5)

    def test_masked_cells_are_ignored(self):
        data = ma.MaskedArray([[1.0, 3.0, 100.0]], mask=[[False, False, True]])
        out = intnorm(data)
        np.testing.assert_allclose(out.data[0, :2], [0.25, 0.75])
        assert out.mask[0, 2]

    def test_negative_values(self):
        with pytest.raises(InvalidArgumentError):
            intnorm(np.array([[1.0, -1.0]]))


class TestPqnorm:
    """Tests for pqnorm"""

    def test_values(self, norm_mat):
        out = pqnorm(norm_mat)
        np.testing.assert_allclose(out.data[1], [0.30625, 0.13125, 0.21875, 0.065625, 0.196875], rtol=1e-5)

    def test_reference_rows_match_intnorm(self, norm_mat):
        out = pqnorm(norm_mat)
        ref = intnorm(norm_mat)
        np.testing.assert_allclose(out.data[[0, 2]], ref.data[[0, 2]])

    def test_negative_values(self):
        with pytest.raises(InvalidArgumentError):
            pqnorm(np.array([[1.0, -1.0], [1.0, 1.0]]))


class TestQuantilenorm:
    """Tests for quantilenorm"""

    def test_values(self, norm_mat):
        out = quantilenorm(norm_mat)
        expected = [
            [1.7, 1.7, 1.7, 4.3, 1.7],
            [4.3, 6.6, 4.3, 1.7, 4.3],
            [6.6, 4.3, 6.6, 6.6, 6.6],
        ]
        np.testing.assert_allclose(out.data, expected)

    def test_ties_share_the_lowest_rank(self):
        out = quantilenorm(np.array([[1.0, 2.0], [1.0, 4.0], [3.0, 6.0]]))
        # Sorted-row means are 1.5, 2.5, 4.5; the tied 1s both take rank 1.
        np.testing.assert_allclose(out.data[:, 0], [1.5, 1.5, 4.5])

    def test_needs_complete_matrix(self):
        with pytest.raises(InvalidArgumentError):
            quantilenorm(ma.MaskedArray([[1.0, 2.0]], mask=[[True, False]]))


class TestHuber:
    """Tests for huberloss and huberize"""

    def test_huberloss(self):
        assert huberloss(0.5) == pytest.approx(0.125)
        assert huberloss(-3.0) == pytest.approx(2.5)
        np.testing.assert_allclose(huberloss(np.array([1.0, 4.0]), alpha=2.0), [0.5, 4.0])

    def test_huberloss_needs_positive_alpha(self):
        with pytest.raises(InvalidArgumentError):
            huberloss(1.0, alpha=0.0)

    def test_huberize_values(self, norm_mat):
        out = huberize(norm_mat)
        expected = [
            [2.86772, 1, 2.0002, 3, 3.5],
            [7, 3, 5, 1.5, 4.5],
            [8, 2, 7, 5.89787, 7.83846],
        ]
        np.testing.assert_allclose(out.data, expected, rtol=1e-4)

    def test_zero_mad_fails_with_every_slice(self):
        mat = np.array([[1.0, 1.0, 1.0], [1.0, 2.0, 1.0], [1.0, 3.0, 2.0]])
        with pytest.raises(NumericDegeneracyError) as err:
            huberize(mat)
        assert err.value.indices == [0, 2]

    def test_zero_mad_propagates_nan(self):
        mat = np.array([[1.0, 1.0], [1.0, 2.0], [1.0, 3.0]])
        out = huberize(mat, on_degenerate_spread="propagate_nan")
        assert np.isnan(out.data[:, 0]).all()
        np.testing.assert_allclose(out.data[:, 1], [1.0, 2.0, 3.0])

    def test_masked_cells_stay_masked(self, norm_mat):
        data = ma.MaskedArray(norm_mat, mask=np.zeros(norm_mat.shape, dtype=bool))
        data[0, 1] = ma.masked
        out = huberize(data, alpha=10.0)
        assert out.mask[0, 1]
        np.testing.assert_allclose(out.data[1:], norm_mat[1:])
