import typer
from pathlib import Path
import yaml
from importlib.resources import files

from junbi.utils.utils import setup_logging

app = typer.Typer(help="junbi: missing-value imputation and preprocessing of numeric tables")


@app.command()
def init(path: Path = typer.Argument(Path("junbi_config.yaml"), help="Where to write the template")):
    """
    Generate a config scaffold (basic template) at given path.
    """
    default_yaml = files("junbi.templates").joinpath("user_template.yaml").read_text()

    path.write_text(default_yaml)
    typer.echo(f"Template written to {path}")


@app.command()
def run(
    config: Path = typer.Option(..., help="Path to YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
):
    """
    Run the junbi preprocessing pipeline described by a YAML config.
    """
    import logging

    from junbi.main import run_pipeline
    from junbi.utils.cli_setup import configure_cli_display

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    configure_cli_display()
    config_data = yaml.safe_load(config.read_text())

    run_pipeline(config=config_data)


@app.command()
def summary(
    file: Path = typer.Argument(..., help="CSV or TSV file"),
    load_method: str = typer.Option("polars", help="polars | pyarrow | pandas"),
):
    """
    Print the missingness summary of a table.
    """
    from junbi.analysis.missingness import missing_summary
    from junbi.utils.cli_setup import configure_cli_display
    from junbi.workflow.dataset import load_table

    configure_cli_display()
    table = load_table(str(file), load_method)
    typer.echo(missing_summary(table))


if __name__ == "__main__":
    app()
