import reprlib

try:
    import polars as pl
except ImportError:
    pl = None

try:
    import pandas as pd
except ImportError:
    pd = None

import numpy as np


class CompactRepr(reprlib.Repr):
    """reprlib with sane limits for slice indices, arrays and dataframes in messages."""

    def __init__(self, max_items: int = 10):
        super().__init__()
        self.maxlist = max_items
        self.maxtuple = max_items
        self.maxset = max_items
        self.maxdict = max_items
        self.maxstring = 200
        self.max_items = max_items

    def repr_ndarray(self, obj, level):
        return self.repr_list([v.item() for v in obj.ravel()[: self.max_items + 1]], level)

    def repr_polars_df(self, obj):
        return f"polars.DataFrame(shape={obj.shape})\n{obj.head(10)}"

    def repr_pandas_df(self, obj):
        return f"pandas.DataFrame(shape={obj.shape})\n{obj.head(10)}"

    def repr(self, obj):
        if pl is not None and isinstance(obj, pl.DataFrame):
            return self.repr_polars_df(obj)
        if pd is not None and isinstance(obj, pd.DataFrame):
            return self.repr_pandas_df(obj)
        if isinstance(obj, np.ndarray):
            return self.repr_ndarray(obj, self.maxlevel)
        return super().repr(obj)


compact_repr = CompactRepr()
