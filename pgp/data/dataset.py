"""
Column-major dataset view consumed by the evaluator.

Values live in one flat, read-only float64 array addressed as
``data[column_index * row_count + row_index]`` so a column is a contiguous
slice. The view stays read-only for the whole fit, which lets parallel
workers share it without locking.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from pgp.utils.exceptions import DataValidationError

logger = logging.getLogger(__name__)


class Dataset:
    """
    Read-only numeric dataset in column-major layout.

    Attributes:
        data: Flat column-major float64 array
        row_count: Number of rows
        variable_indices: Column name to column index map
        target_index: Column index of the target variable
    """

    def __init__(
        self,
        data: np.ndarray,
        row_count: int,
        variable_indices: Mapping[str, int],
        target: str,
        name: Optional[str] = None
    ):
        data = np.array(data, dtype=np.float64).ravel()
        n_columns = len(variable_indices)

        if row_count <= 0:
            raise DataValidationError("dataset has no rows", data_source=name)
        if data.size != row_count * n_columns:
            raise DataValidationError(
                f"data size {data.size} does not match {row_count} rows x {n_columns} columns",
                data_source=name
            )
        if sorted(variable_indices.values()) != list(range(n_columns)):
            raise DataValidationError(
                "variable indices must enumerate columns 0..n-1", data_source=name
            )
        if target not in variable_indices:
            raise DataValidationError(
                f"target variable '{target}' is not a dataset column", data_source=name
            )
        if not np.all(np.isfinite(data)):
            raise DataValidationError("dataset contains NaN or infinite values", data_source=name)

        data.setflags(write=False)
        self.data = data
        self.row_count = int(row_count)
        self.variable_indices: Dict[str, int] = dict(variable_indices)
        self.target = target
        self.target_index = self.variable_indices[target]
        self.name = name

    # Construction

    @classmethod
    def from_columns(
        cls,
        columns: Mapping[str, Sequence[float]],
        target: str,
        name: Optional[str] = None
    ) -> 'Dataset':
        """Build from a name -> values mapping; column order follows the mapping."""
        if not columns:
            raise DataValidationError("no columns given", data_source=name)

        arrays = [np.asarray(values, dtype=np.float64).ravel() for values in columns.values()]
        lengths = {a.size for a in arrays}
        if len(lengths) != 1:
            raise DataValidationError(
                f"columns have different lengths: {sorted(lengths)}", data_source=name
            )

        indices = {column: i for i, column in enumerate(columns)}
        return cls(np.concatenate(arrays), arrays[0].size, indices, target, name=name)

    @classmethod
    def from_arrays(
        cls,
        X: np.ndarray,
        y: np.ndarray,
        variable_names: Optional[List[str]] = None,
        target_name: str = "y",
        name: Optional[str] = None
    ) -> 'Dataset':
        """Build from a feature matrix (n_samples, n_features) and a target vector."""
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2:
            raise DataValidationError(f"X must be 2D array, got shape {X.shape}")
        if y.ndim != 1:
            raise DataValidationError(f"y must be 1D array, got shape {y.shape}")
        if X.shape[0] != y.shape[0]:
            raise DataValidationError(
                f"Number of samples mismatch: X has {X.shape[0]}, y has {y.shape[0]}"
            )

        if variable_names is None:
            variable_names = [f"x{i + 1}" for i in range(X.shape[1])]
        if len(variable_names) != X.shape[1]:
            raise DataValidationError(
                f"Number of variable names ({len(variable_names)}) doesn't match "
                f"number of features ({X.shape[1]})"
            )
        if target_name in variable_names:
            raise DataValidationError(f"target name '{target_name}' collides with an input name")

        columns = {n: X[:, i] for i, n in enumerate(variable_names)}
        columns[target_name] = y
        return cls.from_columns(columns, target_name, name=name)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        target: str,
        inputs: Optional[List[str]] = None,
        name: Optional[str] = None
    ) -> 'Dataset':
        """
        Build from a pandas DataFrame.

        Only numeric columns are used when ``inputs`` is not given; the target
        column is always included.
        """
        if target not in df.columns:
            raise DataValidationError(f"target column '{target}' not found", data_source=name)

        if inputs is None:
            numeric = df.select_dtypes(include=[np.number]).columns
            inputs = [c for c in numeric if c != target]
            skipped = [c for c in df.columns if c not in numeric]
            if skipped:
                logger.debug(f"Skipping non-numeric columns: {skipped}")

        missing = [c for c in inputs if c not in df.columns]
        if missing:
            raise DataValidationError(f"input columns not found: {missing}", data_source=name)

        columns = {c: df[c].to_numpy(dtype=np.float64) for c in inputs}
        columns[target] = df[target].to_numpy(dtype=np.float64)
        return cls.from_columns(columns, target, name=name)

    # Access

    @property
    def variable_names(self) -> List[str]:
        return sorted(self.variable_indices, key=self.variable_indices.get)

    @property
    def input_names(self) -> List[str]:
        return [n for n in self.variable_names if n != self.target]

    def column(self, index: int) -> np.ndarray:
        start = index * self.row_count
        return self.data[start:start + self.row_count]

    def value(self, column_index: int, row_index: int) -> float:
        return float(self.data[column_index * self.row_count + row_index])

    def row(self, row_index: int) -> np.ndarray:
        """All column values of one row, ordered by column index."""
        return self.data[row_index::self.row_count]

    @property
    def target_values(self) -> np.ndarray:
        return self.column(self.target_index)

    def variable_bounds(self, names: Optional[List[str]] = None) -> Dict[str, Tuple[float, float]]:
        """Observed (min, max) of each column, every column by default."""
        if names is None:
            names = self.variable_names
        bounds = {}
        for n in names:
            values = self.column(self.variable_indices[n])
            bounds[n] = (float(values.min()), float(values.max()))
        return bounds

    # Derived views

    def _select_rows(self, rows: np.ndarray, suffix: str) -> 'Dataset':
        matrix = self.data.reshape(len(self.variable_indices), self.row_count)
        name = f"{self.name}[{suffix}]" if self.name else None
        return Dataset(matrix[:, rows].ravel(), len(rows), self.variable_indices, self.target, name=name)

    def subset(self, start: int, count: int) -> 'Dataset':
        """Rows ``[start, start + count)``, clamped to the available rows."""
        stop = min(start + count, self.row_count)
        if start < 0 or start >= stop:
            raise DataValidationError(
                f"empty subset: start={start}, count={count}, rows={self.row_count}",
                data_source=self.name
            )
        return self._select_rows(np.arange(start, stop), f"{start}:{stop}")

    def shuffle(self, rng: np.random.Generator) -> 'Dataset':
        """Copy with rows in random order."""
        return self._select_rows(rng.permutation(self.row_count), "shuffled")

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({n: self.column(i) for n, i in self.variable_indices.items()})

    def __len__(self) -> int:
        return self.row_count

    def __repr__(self) -> str:
        return (
            f"Dataset(name={self.name!r}, rows={self.row_count}, "
            f"columns={self.variable_names}, target={self.target!r})"
        )
