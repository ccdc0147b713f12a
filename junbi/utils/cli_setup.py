def configure_cli_display() -> None:
    """
    Configure dataframe display defaults for tables printed or logged by the CLI.

    Imported lazily from the commands that print tables, so `init` stays fast.
    """
    import polars as pl

    pl.Config.set_tbl_rows(20)
    pl.Config.set_tbl_cols(20)
    pl.Config.set_tbl_width_chars(160)
    pl.Config.set_fmt_str_lengths(20)
