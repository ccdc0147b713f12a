"""
junbi - Pytest Configuration
Shared fixtures for all tests
"""

import numpy as np
import numpy.ma as ma
import polars as pl
import pytest


# ==================== MATRIX FIXTURES ====================

@pytest.fixture
def norm_mat():
    """Small non-negative matrix used by the normalization tests"""
    return np.array([
        [0.5, 1, 2, 3, 3.5],
        [7, 3, 5, 1.5, 4.5],
        [8, 2, 7, 6, 9],
    ])


@pytest.fixture
def tx_mat():
    """Matrix with zeros, used by the transform tests"""
    return np.array([
        [0.5, 1, 2, 3, 3.5],
        [7, 3, 5, 0, 3.5],
        [8, 2, 5, 6, 0],
    ])


@pytest.fixture
def lowrank():
    """Rank-2 30x8 matrix with ~5% of cells masked, plus the truth"""
    rng = np.random.default_rng(7)
    truth = rng.normal(size=(30, 2)) @ rng.normal(size=(2, 8))
    mask = rng.random(truth.shape) < 0.05
    mask[0, 0] = True
    return ma.MaskedArray(truth.copy(), mask=mask), truth


@pytest.fixture
def censored():
    """200x4 log-intensity-like matrix, lowest 20% of every column masked"""
    rng = np.random.default_rng(3)
    values = rng.normal(loc=20.0, scale=2.0, size=(200, 4))
    mask = values < np.quantile(values, 0.2, axis=0, keepdims=True)
    return ma.MaskedArray(values, mask=mask)


# ==================== TABLE FIXTURES ====================

@pytest.fixture
def sample_table():
    """Table with an ID column, nulls and a NaN value"""
    return pl.DataFrame({
        "id": ["a", "b", "c"],
        "x": [1.0, None, float("nan")],
        "y": [1.0, 2.0, 3.0],
    })


@pytest.fixture
def sample_csv(tmp_path):
    """CSV with an ID column and NA cells"""
    path = tmp_path / "matrix.csv"
    path.write_text(
        "sample,f1,f2,f3\n"
        "s1,1.0,2.0,4.0\n"
        "s2,NA,3.0,5.0\n"
        "s3,2.0,NA,6.0\n"
        "s4,3.0,5.0,\n"
        "s5,4.0,6.0,8.0\n"
    )
    return path
