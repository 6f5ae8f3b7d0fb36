"""Stratified partitioning and class rebalancing of the cleaned dataset."""
from __future__ import annotations

import pandas as pd
from sklearn.model_selection import train_test_split
from sklearn.utils import resample

from .data_models import DatasetSplit
from .logging_utils import get_logger

logger = get_logger(__name__)

REBALANCE_METHODS = ("up", "down", "none")


def stratified_split(
    df: pd.DataFrame,
    label_column: str,
    train_fraction: float = 0.75,
    random_state: int = 42,
) -> DatasetSplit:
    """Split ``df`` into train/test subsets preserving the label proportions."""
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
    counts = df[label_column].value_counts()
    counts = counts[counts > 0]
    if counts.empty:
        raise ValueError("Cannot split an empty dataset")
    if (counts < 2).any():
        rare = ", ".join(str(label) for label in counts[counts < 2].index)
        raise ValueError(f"Cannot stratify on '{label_column}': class(es) {rare} have fewer than 2 records")

    train, test = train_test_split(
        df,
        train_size=train_fraction,
        random_state=random_state,
        stratify=df[label_column],
    )
    logger.info(
        "Stratified split on '%s': %d train rows, %d test rows",
        label_column,
        len(train),
        len(test),
    )
    return DatasetSplit(train=train.copy(), test=test.copy())


def rebalance_classes(
    df: pd.DataFrame,
    label_column: str,
    method: str = "up",
    random_state: int = 42,
) -> pd.DataFrame:
    """Resample ``df`` so every label has the same number of records.

    ``"up"`` draws minority classes with replacement up to the majority count,
    ``"down"`` draws majority classes without replacement down to the minority
    count and ``"none"`` returns an unchanged copy.
    """
    if method not in REBALANCE_METHODS:
        raise ValueError(f"Unknown rebalance method '{method}', expected one of {REBALANCE_METHODS}")
    if method == "none":
        return df.copy()

    counts = df[label_column].value_counts()
    counts = counts[counts > 0]
    target = int(counts.max()) if method == "up" else int(counts.min())

    parts: list[pd.DataFrame] = []
    for offset, label in enumerate(counts.index):
        group = df.loc[df[label_column] == label]
        if len(group) == target:
            parts.append(group)
            continue
        parts.append(
            resample(
                group,
                replace=method == "up",
                n_samples=target,
                random_state=random_state + offset,
            )
        )
    balanced = pd.concat(parts).sample(frac=1.0, random_state=random_state)
    logger.info(
        "Rebalanced '%s' (%s-sampling): %s -> %d rows per class",
        label_column,
        method,
        dict(counts.astype(int)),
        target,
    )
    return balanced
