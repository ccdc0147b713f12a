from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import polars as pl


@dataclass
class PreprocessResults:
    raw: pl.DataFrame
    transformed: pl.DataFrame
    normalized: pl.DataFrame
    processed: pl.DataFrame
    columns: List[str]
    imputed_only: Optional[np.ndarray]     # imputed values at missing cells, NaN elsewhere
    meta_transforms: Dict
    meta_normalization: Dict
    meta_imputation: Dict
    imputer: Optional[Any] = None
