"""Dataset views consumed by the evolution engine."""

from pgp.data.dataset import Dataset

__all__ = ["Dataset"]
