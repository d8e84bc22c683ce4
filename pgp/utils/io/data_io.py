"""
Data I/O Utilities
==================

Loads delimited text files into `Dataset` views and writes fit results as JSON.
Sample data files use ``;`` as the field separator, which is the default here.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from pgp.data.dataset import Dataset
from pgp.utils.exceptions import DataValidationError

logger = logging.getLogger(__name__)


class DataIO:
    """
    A utility class for dataset and result file operations.
    Supports delimited text via pandas and JSON.
    """

    def __init__(self, sep: str = ";"):
        self.sep = sep

    def load_csv(self, file_path: str, **kwargs: Any) -> pd.DataFrame:
        """Loads a delimited file into a Pandas DataFrame."""
        if not os.path.exists(file_path):
            raise DataValidationError("file not found", data_source=file_path)
        kwargs.setdefault("sep", self.sep)
        try:
            return pd.read_csv(file_path, **kwargs)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise DataValidationError(f"could not parse file: {e}", data_source=file_path, cause=e) from e

    def load_dataset(
        self,
        file_path: str,
        target: str,
        inputs: Optional[List[str]] = None,
        **kwargs: Any
    ) -> Dataset:
        """Loads a delimited file straight into a column-major Dataset."""
        df = self.load_csv(file_path, **kwargs)
        dataset = Dataset.from_dataframe(df, target, inputs=inputs, name=os.path.basename(file_path))
        logger.info(f"Loaded {dataset.row_count} rows x {len(dataset.variable_indices)} columns from {file_path}")
        return dataset

    def load_json(self, file_path: str) -> Dict[str, Any]:
        """Loads data from a .json file."""
        with open(file_path, 'r') as f:
            return json.load(f)

    def save_json(self, data: Dict[str, Any], file_path: str, indent: Optional[int] = 4):
        """Saves data to a .json file, converting numpy scalars and arrays."""
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=indent, default=_to_serializable)


def _to_serializable(obj: Any) -> Any:
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    return str(obj)


def load_dataset(file_path: str, target: str, inputs: Optional[List[str]] = None, sep: str = ";") -> Dataset:
    return DataIO(sep=sep).load_dataset(file_path, target, inputs=inputs)


def save_results(results: Dict[str, Any], file_path: str):
    DataIO().save_json(results, file_path)
    logger.info(f"Results saved to {file_path}")
