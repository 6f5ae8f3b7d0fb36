"""Data loading and cleaning utilities for the wine-quality datasets."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .config import CleaningConfig, DataPaths
from .data_models import DataValidationResult
from .logging_utils import get_logger

logger = get_logger(__name__)


def standardize_column_name(name: str) -> str:
    """Turn a raw header such as ``"fixed acidity"`` or ``"pH"`` into snake_case."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    text = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    if not text:
        return "x"
    if text[0].isdigit():
        return f"x{text}"
    return text


def standardize_columns(columns: Iterable[str]) -> list[str]:
    """Standardize every header and suffix duplicates with ``_2``, ``_3``..."""
    seen: dict[str, int] = {}
    result: list[str] = []
    for column in columns:
        base = standardize_column_name(column)
        count = seen.get(base, 0) + 1
        seen[base] = count
        result.append(base if count == 1 else f"{base}_{count}")
    return result


class WineQualityLoader:
    """Loads the red and white wine files and cleans them into one modeling dataset."""

    def __init__(self, paths: DataPaths, cleaning: CleaningConfig) -> None:
        self.paths = paths
        self.cleaning = cleaning

    def load_raw(self) -> pd.DataFrame:
        sources = {
            "red": self.paths.red_wine,
            "white": self.paths.white_wine,
        }
        frames: list[pd.DataFrame] = []
        reference: pd.Index | None = None
        for category, path in sources.items():
            df = self._read_csv(path)
            df[self.cleaning.category_column] = category
            if reference is None:
                reference = df.columns
            elif set(df.columns) != set(reference):
                differing = sorted(set(df.columns).symmetric_difference(reference))
                raise ValueError(f"Red and white wine files have different columns: {differing}")
            logger.info("Loaded %d %s wine records from %s", len(df), category, path)
            frames.append(df)
        df = pd.concat(frames, ignore_index=True)
        return df

    def _read_csv(self, path: Path) -> pd.DataFrame:
        if not path.exists():
            raise FileNotFoundError(f"Wine quality file not found: {path.resolve()}")
        df = pd.read_csv(path, sep=self.cleaning.separator)
        df.columns = standardize_columns(df.columns)
        # A category column in the source file is replaced by the tag derived from the file itself.
        df = df.drop(columns=[self.cleaning.category_column], errors="ignore")
        if self.cleaning.quality_column not in df.columns:
            raise ValueError(f"Column '{self.cleaning.quality_column}' not found in {path.name}")
        return df

    def clean_and_validate(self, df: pd.DataFrame) -> tuple[pd.DataFrame, DataValidationResult]:
        cfg = self.cleaning
        raw_rows = len(df)
        df = df.copy()
        df.columns = standardize_columns(df.columns)

        value_columns = [col for col in df.columns if col != cfg.category_column]
        empty_rows = df[value_columns].isna().all(axis=1)
        df = df.loc[~empty_rows]

        quality = pd.to_numeric(df[cfg.quality_column], errors="coerce")
        if quality.isna().all():
            raise ValueError(f"Column '{cfg.quality_column}' has no values")
        missing_quality = quality.isna()
        df = df.loc[~missing_quality].copy()
        quality = quality.loc[~missing_quality]

        low, high = cfg.quality_range
        invalid_quality = (quality != quality.round()) | ~quality.between(low, high)
        unknown_category = ~df[cfg.category_column].isin(cfg.categories)
        rejected = invalid_quality | unknown_category
        if rejected.any():
            logger.warning(
                "Dropping %d rows with non-integer or out-of-range quality and %d rows with unknown %s",
                int(invalid_quality.sum()),
                int((unknown_category & ~invalid_quality).sum()),
                cfg.category_column,
            )
        df = df.loc[~rejected].copy()
        df[cfg.quality_column] = quality.loc[~rejected]

        # swept after row drops and coercion: text-only columns end up all-NaN here
        for column in self.attribute_columns(df):
            df[column] = pd.to_numeric(df[column], errors="coerce").astype(float)
        empty_columns = tuple(col for col in self.attribute_columns(df) if df[col].isna().all())
        df = df.drop(columns=list(empty_columns))

        quality = df[cfg.quality_column].astype(int)
        df[cfg.quality_column] = quality
        df["quality_label"] = pd.Categorical(quality, categories=sorted(quality.unique()), ordered=True)
        df[cfg.category_column] = pd.Categorical(df[cfg.category_column], categories=list(cfg.categories))
        df[cfg.label_column] = pd.Categorical(
            np.where(quality <= cfg.low_quality_threshold, "yes", "no"),
            categories=["no", "yes"],
        )
        df = df.reset_index(drop=True)

        counts = df[cfg.category_column].value_counts()
        validation = DataValidationResult(
            raw_rows=raw_rows,
            row_count=len(df),
            dropped_empty_rows=int(empty_rows.sum()),
            dropped_empty_columns=empty_columns,
            dropped_missing_quality=int(missing_quality.sum()),
            dropped_invalid_quality=int(invalid_quality.sum()),
            dropped_unknown_category=int((unknown_category & ~invalid_quality).sum()),
            category_counts={str(key): int(value) for key, value in counts.items()},
            low_quality_rate=float((df[cfg.label_column] == "yes").mean()) if len(df) else float("nan"),
        )
        logger.info(
            "Cleaned dataset: %d of %d rows kept, %.1f%% low quality",
            validation.row_count,
            raw_rows,
            100 * validation.low_quality_rate,
        )
        if empty_columns:
            logger.info("Dropped empty columns: %s", ", ".join(empty_columns))
        return df, validation

    def attribute_columns(self, df: pd.DataFrame) -> list[str]:
        """Continuous measurement columns, i.e. everything but quality, category and derived labels."""
        cfg = self.cleaning
        excluded = {cfg.quality_column, cfg.category_column, cfg.label_column, "quality_label"}
        return [col for col in df.columns if col not in excluded]

    def feature_columns(self, df: pd.DataFrame) -> list[str]:
        return self.attribute_columns(df) + [self.cleaning.category_column]
