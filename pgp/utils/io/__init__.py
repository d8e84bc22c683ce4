"""
Input/Output Utilities
======================

Dataset loading from delimited files and JSON result writing.
"""

from pgp.utils.io.data_io import DataIO, load_dataset, save_results

__all__ = ["DataIO", "load_dataset", "save_results"]
