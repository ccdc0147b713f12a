from copy import deepcopy
from typing import Optional

import pandas as pd
import polars as pl
import pyarrow.csv as pv_csv

from junbi.dataset.preprocessresults import PreprocessResults
from junbi.utils.utils import log_info, log_time
from junbi.workflow.preprocessing import Preprocessor

NULL_VALUES = ["NA", "N/A", ""]


class Dataset:
    """Loads a CSV/TSV table and runs the preprocessing pipeline over its numeric block."""

    def __init__(self, **kwargs):
        """
        Initialize the dataset object.

        Args:
            kwargs: dict with all the config elements
        """
        dataset_cfg = kwargs.get("dataset", {}) or {}
        self.file_path = dataset_cfg.get("input_file", None)
        self.load_method = dataset_cfg.get("load_method", "polars")
        self.start_col = int(dataset_cfg.get("start_col", 0) or 0)
        end_col = dataset_cfg.get("end_col", None)
        self.end_col: Optional[int] = None if end_col is None else int(end_col)

        if not self.file_path:
            raise ValueError("dataset.input_file is required.")

        preprocessing_cfg = deepcopy(kwargs.get("preprocessing", {}) or {})
        self.preprocessor = Preprocessor(preprocessing_cfg, start_col=self.start_col, end_col=self.end_col)

        self._load_and_process()

    def _load_and_process(self) -> None:
        self.rawdata = self._load_rawdata(self.file_path)
        log_info(f"Loaded {self.file_path}: {self.rawdata.height} rows x {self.rawdata.width} columns")
        self.preprocessed_data = self._apply_preprocessing(self.rawdata)

    @log_time("Loading data")
    def _load_rawdata(self, file_path: str) -> pl.DataFrame:
        """Load raw data from a CSV or TSV file using different libraries."""
        return load_table(file_path, self.load_method)

    @log_time("Data Processing")
    def _apply_preprocessing(self, df: pl.DataFrame) -> PreprocessResults:
        return self.preprocessor.fit_transform(df)

    def get_table(self) -> pl.DataFrame:
        """The fully processed table."""
        return self.preprocessed_data.processed


def load_table(file_path: str, load_method: str = "polars") -> pl.DataFrame:
    """
    Read a CSV or TSV file into a polars DataFrame.

    `NA`, `N/A` and empty cells are nulls (missing). With polars and pyarrow a literal
    `NaN` stays a float value; pandas cannot keep them apart and reads it as missing.
    """
    file_path = str(file_path)
    if not file_path.endswith((".csv", ".tsv")):
        raise ValueError("Only CSV or TSV files are supported.")

    delimiter = "\t" if file_path.endswith(".tsv") else ","

    if load_method == "polars":
        return pl.read_csv(file_path,
                           separator=delimiter,
                           infer_schema_length=10000,
                           null_values=NULL_VALUES)
    elif load_method == "pyarrow":
        parse_options = pv_csv.ParseOptions(delimiter=delimiter)
        convert_options = pv_csv.ConvertOptions(null_values=NULL_VALUES, strings_can_be_null=True)
        arrow_table = pv_csv.read_csv(file_path, parse_options=parse_options, convert_options=convert_options)
        return pl.from_arrow(arrow_table)
    elif load_method == "pandas":
        df = pd.read_csv(file_path, delimiter=delimiter, na_values=NULL_VALUES, keep_default_na=False)
        return pl.from_pandas(df)
    else:
        raise ValueError(f"Unknown load method: {load_method}")
