"""Configuration objects for the wine-quality tree modeling pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class DataPaths:
    """Centralized storage for important project paths."""

    red_wine: Path = Path("data/winequality-red.csv")
    white_wine: Path = Path("data/winequality-white.csv")
    report_dir: Path = Path("reports")


@dataclass(frozen=True)
class CleaningConfig:
    """How raw records are read and turned into a modeling dataset."""

    separator: str = ";"
    quality_column: str = "quality"
    category_column: str = "type"
    label_column: str = "low_quality"
    # quality <= threshold counts as low quality
    low_quality_threshold: int = 5
    quality_range: tuple[int, int] = (0, 10)
    categories: tuple[str, ...] = ("red", "white")


@dataclass(frozen=True)
class SplitConfig:
    """Parameters for the stratified train/test partition."""

    train_fraction: float = 0.75
    random_state: int = 42
    rebalance: str = "up"


@dataclass(frozen=True)
class TreeConfig:
    """Stopping rules for the conditional inference tree."""

    mincriterion: float = 0.95
    minsplit: int = 20
    minbucket: int = 7
    maxdepth: int | None = None
    testtype: str = "bonferroni"


@dataclass(frozen=True)
class ForestConfig:
    """Parameters for the random forest estimator."""

    random_state: int = 42
    n_estimators: int = 500
    max_features: str | float | None = "sqrt"
    min_samples_leaf: int = 1
    n_jobs: int = -1


@dataclass(frozen=True)
class EvaluationConfig:
    probability_threshold: float = 0.5
    positive_label: str = "yes"


@dataclass(frozen=True)
class PipelineConfig:
    """Root configuration object that bundles all other configs."""

    paths: DataPaths = field(default_factory=DataPaths)
    cleaning: CleaningConfig = field(default_factory=CleaningConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    forest: ForestConfig = field(default_factory=ForestConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)


DEFAULT_CONFIG = PipelineConfig()
