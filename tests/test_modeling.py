from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from vinotree.config import CleaningConfig, DataPaths, ForestConfig, TreeConfig
from vinotree.data_loader import WineQualityLoader
from vinotree.modeling import ForestClassifier, TreeClassifier


@pytest.fixture
def dataset(wine_files: tuple[Path, Path]) -> tuple[pd.DataFrame, list[str]]:
    red, white = wine_files
    loader = WineQualityLoader(DataPaths(red_wine=red, white_wine=white), CleaningConfig())
    cleaned, _ = loader.clean_and_validate(loader.load_raw())
    return cleaned, loader.feature_columns(cleaned)


def test_tree_classifier_finds_alcohol(dataset: tuple[pd.DataFrame, list[str]]) -> None:
    df, features = dataset
    model = TreeClassifier(TreeConfig(), features, "low_quality").fit(df)

    proba = model.predict_proba(df)
    predicted = model.predict(df)

    assert model.tree.root_.variable == "alcohol"
    assert proba.between(0, 1).all()
    assert proba.index.equals(df.index)
    assert (predicted == df["low_quality"].astype(str)).mean() > 0.85
    assert "alcohol" in model.describe()


def test_forest_classifier_probabilities_and_importances(dataset: tuple[pd.DataFrame, list[str]]) -> None:
    df, features = dataset
    config = ForestConfig(n_estimators=40, n_jobs=1)
    model = ForestClassifier(config, features, "low_quality").fit(df)

    proba = model.predict_proba(df)
    importances = model.feature_importances()

    assert model.classes_ == ["no", "yes"]
    assert proba.between(0, 1).all()
    assert importances.index[0] == "alcohol"
    assert {"type_red", "type_white"} <= set(importances.index)
    assert importances.sum() == pytest.approx(1.0)
    assert 0.0 <= model.oob_score <= 1.0


def test_models_require_training(dataset: tuple[pd.DataFrame, list[str]]) -> None:
    df, features = dataset
    forest = ForestClassifier(ForestConfig(n_estimators=5), features, "low_quality")
    tree = TreeClassifier(TreeConfig(), features, "low_quality")

    with pytest.raises(RuntimeError, match="not been trained"):
        forest.predict_proba(df)
    with pytest.raises(RuntimeError, match="not been trained"):
        tree.predict(df)
    with pytest.raises(RuntimeError, match="not been trained"):
        forest.feature_importances()
