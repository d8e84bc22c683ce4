from .genetic import PgpAlgorithm, create_engine_from_config, run_symbolic_regression

__all__ = ["PgpAlgorithm", "create_engine_from_config", "run_symbolic_regression"]
