from typing import Any


def get_imputer(**kwargs) -> Any:
    """
    Returns an imputer instance based on the given method.

    Valid methods:
        - "zero": ZeroImputer, missing cells become 0.
        - "min": MinImputer, minimum per slice (or whole matrix).
        - "half_min": HalfMinImputer, half the minimum per slice.
        - "median_cat": MedianCatImputer, 0/1/2 categories around the column median.
        - "knn": KNNImputer, inverse-distance weighted nearest neighbors.
        - "svd": SVDImputer, iterative low-rank reconstruction.
        - "qrilc": QRILCImputer, left-censored draws from a quantile-regression fit.
        - "minprob": MinProbImputer, draws around a low quantile.

    kwargs are passed to the imputer constructors.
    """
    method = kwargs.pop("method", None)
    missing_values = kwargs.get("missing_values", float("nan"))

    if method == "zero":
        from junbi.workflow.imputers.simpleimputers import ZeroImputer
        return ZeroImputer(missing_values=missing_values)
    elif method == "min":
        from junbi.workflow.imputers.simpleimputers import MinImputer
        return MinImputer(axis=kwargs.get("axis"), missing_values=missing_values)
    elif method == "half_min":
        from junbi.workflow.imputers.simpleimputers import HalfMinImputer
        return HalfMinImputer(axis=kwargs.get("axis"), missing_values=missing_values)
    elif method == "median_cat":
        from junbi.workflow.imputers.simpleimputers import MedianCatImputer
        return MedianCatImputer(missing_values=missing_values)
    elif method == "knn":
        from junbi.workflow.imputers.knnimputer import KNNImputer
        return KNNImputer(
            n_neighbors=kwargs.get("knn_k", 1),
            threshold=kwargs.get("knn_threshold", 0.5),
            axis=kwargs.get("axis", 1),
            metric=kwargs.get("knn_metric", "euclidean"),
            p=kwargs.get("knn_p", 2),
            missing_values=missing_values,
        )
    elif method == "svd":
        from junbi.workflow.imputers.svdimputer import SVDImputer
        limits = kwargs.get("svd_limits")
        return SVDImputer(
            rank=kwargs.get("svd_rank"),
            tol=kwargs.get("svd_tol", 1e-10),
            max_iter=kwargs.get("svd_max_iter", 100),
            limits=tuple(limits) if limits is not None else None,
            axis=kwargs.get("axis"),
            missing_values=missing_values,
        )
    elif method == "qrilc":
        from junbi.workflow.imputers.qrilcimputer import QRILCImputer
        return QRILCImputer(
            axis=kwargs.get("axis", 0),
            tune_sigma=kwargs.get("lc_tune_sigma", 1.0),
            eps=kwargs.get("qrilc_eps", 0.005),
            random_state=kwargs.get("random_state", 42),
            on_degenerate_spread=kwargs.get("on_degenerate_spread", "fail"),
            missing_values=missing_values,
        )
    elif method == "minprob":
        from junbi.workflow.imputers.min_imputers import MinProbImputer
        return MinProbImputer(
            quantile=kwargs.get("lc_quantile", 0.01),
            axis=kwargs.get("axis", 0),
            tune_sigma=kwargs.get("lc_tune_sigma", 1.0),
            random_state=kwargs.get("random_state", 42),
            on_degenerate_spread=kwargs.get("on_degenerate_spread", "fail"),
            missing_values=missing_values,
        )
    else:
        raise ValueError(f"Invalid imputation method: {method}. And one is needed...\n"
                         "Options: zero, min, half_min, median_cat, knn, svd, qrilc, minprob")
