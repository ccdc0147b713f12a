"""Preprocessing pipeline for junbi.

This module performs, over the numeric column block of a table:
1) Transforms (log2, log10, natural log, mean centering)
2) Normalization (total area, probabilistic quotient, quantile, Huberization)
3) Imputation (any method known to `get_imputer`)

All steps record intermediate artifacts to `IntermediateResults`, which are then
assembled into a `PreprocessResults` container.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import numpy.ma as ma
import polars as pl

from junbi.dataset.intermediateresults import IntermediateResults
from junbi.dataset.preprocessresults import PreprocessResults
from junbi.workflow.imputer_factory import get_imputer
from junbi.workflow.normalizers.normalization import huberize, intnorm, pqnorm, quantilenorm
from junbi.workflow.tables import extract_block, rebuild_table
from junbi.workflow.transforms import log_tx, meancenter_tx
from junbi.utils.utils import log_info, log_indent, log_time

_LOG_BASES = {"log2": 2, "log10": 10, "log": math.e, "ln": math.e}


def _as_steps(steps_cfg) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Normalize a step list from the config.

    Entries are method names ("log2") or one-key mappings with parameters
    ({"log2": {"constant": 1}}); a single string is a one-step list.
    """
    if steps_cfg is None:
        return []
    if isinstance(steps_cfg, (str, dict)):
        steps_cfg = [steps_cfg]
    steps = []
    for entry in steps_cfg:
        if isinstance(entry, str):
            steps.append((entry.strip().lower(), {}))
        elif isinstance(entry, dict) and len(entry) == 1:
            name, params = next(iter(entry.items()))
            steps.append((str(name).strip().lower(), dict(params or {})))
        else:
            raise ValueError(f"Invalid step entry: {entry!r}. Use a name or a one-key mapping.")
    return steps


class Preprocessor:
    """Handles transforms, normalization and imputation of a table's numeric block."""

    available_transforms = ["log2", "log10", "log", "ln", "meancenter"]
    available_normalization = ["intnorm", "pqnorm", "quantile", "huberize", "none"]

    def __init__(self, config: Optional[dict] = None, start_col: int = 0, end_col: Optional[int] = None):
        """Initialize from the `preprocessing` section of the config."""
        config = config or {}
        self.intermediate_results = IntermediateResults()
        self.start_col = start_col
        self.end_col = end_col

        self.transforms = _as_steps(config.get("transforms"))
        self.normalization = config.get("normalization") or {}
        self.imputation = config.get("imputation") or {}

        for name, _ in self.transforms:
            if name not in self.available_transforms:
                raise ValueError(f"Invalid transform: {name}. Options: {', '.join(self.available_transforms)}")
        for name, _ in _as_steps(self.normalization.get("method")):
            if name not in self.available_normalization:
                raise ValueError(
                    f"Invalid normalization method: {name}. "
                    f"Options: {', '.join(self.available_normalization)}"
                )

    def fit_transform(self, df: pl.DataFrame) -> PreprocessResults:
        """Run the full preprocessing pipeline and return a `PreprocessResults` bundle."""
        # Step 1: numeric block
        self._extract(df)

        # Step 2: transforms
        self._transform()

        # Step 3: normalization
        self._normalize()

        # Step 4: imputation
        self._impute()

        ir = self.intermediate_results
        return PreprocessResults(
            raw=ir.dfs.get("raw_df"),
            transformed=ir.dfs.get("transformed"),
            normalized=ir.dfs.get("normalized"),
            processed=ir.dfs.get("imputed"),
            columns=ir.columns,
            imputed_only=ir.matrices.get("imputed_only"),
            meta_transforms=ir.metadata.get("transforms"),
            meta_normalization=ir.metadata.get("normalization"),
            meta_imputation=ir.metadata.get("imputation"),
            imputer=ir.models.get("imputation"),
        )

    def _extract(self, df: pl.DataFrame) -> None:
        block, names = extract_block(df, self.start_col, self.end_col)
        self.intermediate_results.set_columns(names)
        self.intermediate_results.add_matrix("raw", block)
        self.intermediate_results.add_df("raw_df", df)
        n_missing = int(ma.getmaskarray(block).sum())
        log_info(f"Numeric block: {block.shape[0]} rows x {block.shape[1]} columns, {n_missing} missing cells")

    def _store(self, name: str, mat) -> None:
        self.intermediate_results.add_matrix(name, mat)
        table = rebuild_table(self.intermediate_results.dfs["raw_df"], mat, self.start_col, self.end_col)
        self.intermediate_results.add_df(name, table)

    @log_time("Transforms")
    def _transform(self) -> None:
        """Apply the configured transform chain, in order."""
        mat = self.intermediate_results.matrices["raw"]
        for name, params in self.transforms:
            if name in _LOG_BASES:
                constant = params.get("constant", 0)
                mat = log_tx(mat, base=_LOG_BASES[name], constant=constant)
                log_info(f"{name} transform (constant={constant})")
            elif name == "meancenter":
                axis = params.get("axis", 0)
                mat = meancenter_tx(mat, axis=axis)
                log_info(f"Mean centering (axis={axis})")
        if not self.transforms:
            log_info("No transform configured.")
        self.intermediate_results.add_metadata("transforms", "steps", [n for n, _ in self.transforms])
        self._store("transformed", mat)

    @log_time("Normalization")
    def _normalize(self) -> None:
        """Apply configured normalization(s); chains run in order."""
        mat = self.intermediate_results.matrices["transformed"]
        methods = _as_steps(self.normalization.get("method"))
        for name, params in methods:
            with log_indent():
                if name == "intnorm":
                    mat = intnorm(mat, axis=params.get("axis", 1), lam=params.get("lam", 1.0))
                elif name == "pqnorm":
                    mat = pqnorm(mat)
                elif name == "quantile":
                    mat = quantilenorm(mat)
                elif name == "huberize":
                    mat = huberize(
                        mat,
                        alpha=params.get("alpha", self.normalization.get("huber_alpha", 1.0)),
                        axis=params.get("axis", 0),
                        on_degenerate_spread=self.normalization.get("on_degenerate_spread", "fail"),
                    )
                log_info(f"Normalization '{name}' applied.")
        self.intermediate_results.add_metadata("normalization", "method", [n for n, _ in methods])
        self._store("normalized", mat)

    @log_time("Imputation")
    def _impute(self) -> None:
        """Impute the missing cells of the normalized block."""
        not_imp = self.intermediate_results.matrices["normalized"]
        mask = ma.getmaskarray(not_imp)
        method = self.imputation.get("method")

        if method is None or str(method).lower() == "none":
            imp_mat = not_imp
            imputer = None
            log_info("No imputation configured; missing cells are kept.")
        else:
            imputer = get_imputer(**dict(self.imputation))
            imp_mat = ma.MaskedArray(imputer.fit_transform(not_imp), mask=np.zeros(mask.shape, dtype=bool))
            log_info(f"Imputed {int(mask.sum())} cells with '{method}'.")

        imp_only = np.where(mask, np.asarray(ma.getdata(imp_mat), dtype=np.float64), np.nan)
        self.intermediate_results.add_matrix("imputed_only", imp_only)
        self.intermediate_results.add_model("imputation", imputer)
        self.intermediate_results.add_metadata("imputation", "method", method)
        if imputer is not None:
            self.intermediate_results.add_metadata("imputation", "params", imputer.get_params())
            for attr in ("n_iter_", "convergence_"):
                if hasattr(imputer, attr):
                    self.intermediate_results.add_metadata("imputation", attr.rstrip("_"), getattr(imputer, attr))
        self._store("imputed", imp_mat)
