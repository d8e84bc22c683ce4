# pgp/core/grammar/__init__.py
from .operators import (
    ALL_OPERATORS,
    DEFAULT_OPERATOR_NAMES,
    Operator,
    OperatorCatalog,
    create_operator_catalog,
    list_operators,
)

__all__ = [
    "ALL_OPERATORS",
    "DEFAULT_OPERATOR_NAMES",
    "Operator",
    "OperatorCatalog",
    "create_operator_catalog",
    "list_operators",
]
