from pathlib import Path

from junbi.dataset.preprocessresults import PreprocessResults
from junbi.utils.utils import log_info, log_time
from junbi.workflow.dataset import Dataset


@log_time("Junbi Pipeline")
def run_pipeline(config: dict) -> PreprocessResults:
    dataset = Dataset(**config)
    results = dataset.preprocessed_data

    export_config = config.get("exports", {}) or {}
    path_table = export_config.get("path_table")
    if path_table:
        path = Path(path_table)
        path.parent.mkdir(parents=True, exist_ok=True)
        separator = "\t" if path.suffix == ".tsv" else ","
        dataset.get_table().write_csv(path, separator=separator, null_value="NA")
        log_info(f"Processed table written to {path}")

    return results
