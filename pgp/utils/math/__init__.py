from pgp.utils.math.statistics import pearson_r, regression_metrics

__all__ = ["pearson_r", "regression_metrics"]
