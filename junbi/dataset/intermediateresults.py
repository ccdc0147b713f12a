from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import polars as pl

_STEPS = ("transforms", "normalization", "imputation")


@dataclass
class IntermediateResults:
    # Numeric block at each stage of preprocessing (MaskedArray until imputed)
    matrices: Dict[str, np.ndarray] = field(default_factory=dict)

    # Full tables (block put back between its leading and trailing columns)
    dfs: Dict[str, pl.DataFrame] = field(default_factory=dict)

    # Fitted estimators per step
    models: Dict[str, Any] = field(default_factory=lambda: {"normalization": None, "imputation": None})

    # Parameters actually used by each step
    metadata: Dict[str, Any] = field(default_factory=lambda: {step: {} for step in _STEPS})

    # Names of the numeric block columns
    columns: Optional[List[str]] = None

    def set_columns(self, columns: List[str]):
        """Set the numeric block column names once, from the raw table."""
        self.columns = list(columns)

    def add_matrix(self, name: str, matrix: np.ndarray):
        """Add a matrix with automatic shape validation."""
        if self.columns is not None and matrix.shape[1] != len(self.columns):
            raise ValueError(f"Matrix '{name}' has inconsistent column dimension.")
        first = next(iter(self.matrices.values()), None)
        if first is not None and matrix.shape[0] != first.shape[0]:
            raise ValueError(f"Matrix '{name}' has inconsistent row dimension.")
        self.matrices[name] = matrix

    def add_df(self, name: str, df: pl.DataFrame):
        self.dfs[name] = df

    def add_metadata(self, step: str, key: str, value: Any):
        """Store step parameters, e.g. the normalization method or the imputer's rank."""
        if step not in _STEPS:
            raise ValueError(f"step must be one of {', '.join(_STEPS)}")
        self.metadata[step][key] = value

    def add_model(self, step: str, model: Any):
        """Add normalization or imputation model."""
        if step not in ["normalization", "imputation"]:
            raise ValueError("step must be 'normalization' or 'imputation'")
        self.models[step] = model
