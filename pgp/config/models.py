# pgp/config/models.py

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from pgp.core.grammar.operators import ALL_OPERATORS
from pgp.core.search.config import EngineConfig
from pgp.core.search.selection import list_selection_strategies
from pgp.data.dataset import Dataset

# --- Component Models ---

class DataConfig(BaseModel):
    path: Optional[str] = None                  # CLI argument takes precedence
    target: Optional[str] = None
    inputs: Optional[List[str]] = None          # None: every non-target column
    sep: str = ";"
    train_rows: Optional[int] = None            # leading rows used for training
    shuffle: bool = False                       # shuffle rows before the split

    @field_validator('train_rows')
    @classmethod
    def train_rows_must_be_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 2:
            raise ValueError("train_rows must be at least 2")
        return value


class SearchConfig(BaseModel):
    generations: int = Field(1000, ge=0)
    population_size: int = Field(1000, gt=0)
    tree_length: int = Field(50, gt=0)
    elites: int = Field(1, ge=0)

    crossover_rate: float = Field(1.0, ge=0.0, le=1.0)
    mutation_rate: float = Field(0.25, ge=0.0, le=1.0)
    max_selection_pressure: float = Field(200.0, gt=0.0)

    selection_strategy: str = "proportional"
    tournament_size: int = Field(3, gt=0)

    use_constant_optimization: bool = False
    constant_optimization_rate: float = Field(0.1, ge=0.0, le=1.0)
    operators: Optional[List[str]] = None

    use_parallelization: bool = False
    n_workers: Optional[int] = Field(None, gt=0)
    random_state: Optional[int] = None

    @field_validator('selection_strategy')
    @classmethod
    def strategy_must_be_known(cls, value: str) -> str:
        if value not in list_selection_strategies():
            raise ValueError(f"selection_strategy must be one of {list_selection_strategies()}")
        return value

    @field_validator('operators')
    @classmethod
    def operators_must_be_known(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        unknown = [name for name in value if name not in ALL_OPERATORS]
        if unknown or not value:
            raise ValueError(f"operators must be a non-empty subset of {list(ALL_OPERATORS.keys())}")
        return value

    @model_validator(mode='after')
    def elites_fit_population(self):
        if self.elites >= self.population_size:
            raise ValueError("elites must be less than population_size")
        return self


class OutputConfig(BaseModel):
    results_path: Optional[str] = None
    log_generations: bool = True
    verbose: bool = False


# --- Main Run Configuration Model ---

class RunConfig(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def to_engine_config(self, dataset: Dataset) -> EngineConfig:
        """Combine the search settings with the variable description of ``dataset``."""
        return EngineConfig.from_dataset(
            dataset,
            inputs=self.data.inputs,
            log_generations=self.output.log_generations,
            verbose=self.output.verbose,
            **self.search.model_dump()
        )
