"""Dataclasses used across the wine-quality modeling project."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd


@dataclass(frozen=True)
class DataValidationResult:
    """Information about dataset health after cleaning."""

    raw_rows: int
    row_count: int
    dropped_empty_rows: int
    dropped_empty_columns: tuple[str, ...]
    dropped_missing_quality: int
    dropped_invalid_quality: int = 0
    dropped_unknown_category: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    low_quality_rate: float = float("nan")


@dataclass(frozen=True)
class DatasetSplit:
    """Disjoint training and evaluation partitions of the cleaned dataset."""

    train: pd.DataFrame
    test: pd.DataFrame

    @property
    def train_rows(self) -> int:
        return len(self.train)

    @property
    def test_rows(self) -> int:
        return len(self.test)


@dataclass(frozen=True)
class EvaluationResult:
    """Confusion-matrix counts and the rates derived from them."""

    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int
    threshold: float
    positive_label: str
    accuracy: float
    accuracy_ci: tuple[float, float]
    no_information_rate: float
    accuracy_p_value: float
    kappa: float
    sensitivity: float
    specificity: float
    precision: float
    negative_predictive_value: float
    prevalence: float
    balanced_accuracy: float
    f1: float
    roc_auc: float

    @property
    def total(self) -> int:
        return self.true_positives + self.false_positives + self.true_negatives + self.false_negatives

    def confusion_frame(self, negative_label: str = "no") -> pd.DataFrame:
        """Return the 2x2 table with predictions as rows and actual classes as columns."""
        labels = [negative_label, self.positive_label]
        return pd.DataFrame(
            [
                [self.true_negatives, self.false_negatives],
                [self.false_positives, self.true_positives],
            ],
            index=pd.Index(labels, name="predicted"),
            columns=pd.Index(labels, name="actual"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "kappa": self.kappa,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "precision": self.precision,
            "npv": self.negative_predictive_value,
            "balanced_accuracy": self.balanced_accuracy,
            "f1": self.f1,
            "roc_auc": self.roc_auc,
        }


@dataclass(frozen=True)
class ModelEvaluation:
    """Evaluation of one fitted model on the held-out split."""

    name: str
    result: EvaluationResult
    train_rows: int
    details: str = ""


@dataclass(frozen=True)
class PipelineResult:
    """Snapshot of the complete pipeline execution."""

    evaluations: dict[str, ModelEvaluation]
    models: dict[str, Any]
    report_path: Path | None
    dataset: pd.DataFrame
    split: DatasetSplit
    feature_importances: pd.Series
    data_health: DataValidationResult | None = None
