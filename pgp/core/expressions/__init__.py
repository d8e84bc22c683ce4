# pgp/core/expressions/__init__.py
from .expression import Constant, Program, Symbol, Variable, is_operator, stack_effect
from .evaluator import StackEvaluator

__all__ = [
    "Constant",
    "Program",
    "Symbol",
    "Variable",
    "is_operator",
    "stack_effect",
    "StackEvaluator",
]
