"""Modeling utilities for wine-quality classification."""
from __future__ import annotations

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from .config import ForestConfig, TreeConfig
from .ctree import ConditionalInferenceTree
from .logging_utils import get_logger

logger = get_logger(__name__)


class BinaryClassifier:
    """Shared fit/predict plumbing: subclasses provide ``_fit`` and ``_proba_matrix``."""

    name = "model"

    def __init__(self, feature_columns: list[str], label_column: str, positive_label: str = "yes") -> None:
        self.feature_columns = list(feature_columns)
        self.label_column = label_column
        self.positive_label = positive_label
        self.classes_: list[str] = []
        self._fitted = False

    def fit(self, df: pd.DataFrame) -> BinaryClassifier:
        X = df[self.feature_columns]
        y = df[self.label_column].astype(str)
        self._fit(X, y)
        self._fitted = True
        logger.info("Fitted %s on %d rows", self.name, len(df))
        return self

    def predict_proba(self, df: pd.DataFrame) -> pd.Series:
        """Probability of the positive label for every row of ``df``."""
        if not self._fitted:
            raise RuntimeError("Model has not been trained yet.")
        proba = self._proba_matrix(df[self.feature_columns])
        if self.positive_label in self.classes_:
            positive = proba[:, self.classes_.index(self.positive_label)]
        else:
            positive = np.zeros(len(df))
        return pd.Series(positive, index=df.index, name=f"p_{self.positive_label}")

    def predict(self, df: pd.DataFrame) -> pd.Series:
        if not self._fitted:
            raise RuntimeError("Model has not been trained yet.")
        proba = self._proba_matrix(df[self.feature_columns])
        labels = np.asarray(self.classes_)[np.argmax(proba, axis=1)]
        return pd.Series(labels, index=df.index, name="predicted")

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> None:
        raise NotImplementedError

    def _proba_matrix(self, X: pd.DataFrame) -> np.ndarray:
        raise NotImplementedError


class TreeClassifier(BinaryClassifier):
    """Conditional inference tree on the raw training split."""

    name = "ctree"

    def __init__(
        self,
        tree_config: TreeConfig,
        feature_columns: list[str],
        label_column: str,
        positive_label: str = "yes",
    ) -> None:
        super().__init__(feature_columns, label_column, positive_label)
        self.tree_config = tree_config
        self.tree = ConditionalInferenceTree(
            mincriterion=tree_config.mincriterion,
            minsplit=tree_config.minsplit,
            minbucket=tree_config.minbucket,
            maxdepth=tree_config.maxdepth,
            testtype=tree_config.testtype,
        )

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> None:
        self.tree.fit(X, y)
        self.classes_ = [str(label) for label in self.tree.classes_]
        logger.info(
            "Conditional inference tree: %d terminal nodes, depth %d",
            self.tree.n_terminal_nodes,
            self.tree.depth,
        )

    def _proba_matrix(self, X: pd.DataFrame) -> np.ndarray:
        return self.tree.predict_proba(X)

    def describe(self) -> str:
        return self.tree.describe()


class ForestClassifier(BinaryClassifier):
    """Wrapper around a scikit-learn random forest pipeline."""

    name = "random_forest"

    def __init__(
        self,
        forest_config: ForestConfig,
        feature_columns: list[str],
        label_column: str,
        positive_label: str = "yes",
    ) -> None:
        super().__init__(feature_columns, label_column, positive_label)
        self.forest_config = forest_config
        self.pipeline: Pipeline | None = None

    def _fit(self, X: pd.DataFrame, y: pd.Series) -> None:
        pipeline = self._build_pipeline(X)
        pipeline.fit(X, y)
        self.pipeline = pipeline
        self.classes_ = [str(label) for label in pipeline.classes_]
        forest = pipeline.named_steps["model"]
        if hasattr(forest, "oob_score_"):
            logger.info("Random forest out-of-bag accuracy: %.3f", forest.oob_score_)

    def _proba_matrix(self, X: pd.DataFrame) -> np.ndarray:
        return self.pipeline.predict_proba(X)

    @property
    def oob_score(self) -> float:
        if self.pipeline is None:
            raise RuntimeError("Model has not been trained yet.")
        return float(getattr(self.pipeline.named_steps["model"], "oob_score_", float("nan")))

    def feature_importances(self) -> pd.Series:
        """Impurity-based importances, one entry per encoded feature, largest first."""
        if self.pipeline is None:
            raise RuntimeError("Model has not been trained yet.")
        names = self.pipeline.named_steps["preprocess"].get_feature_names_out()
        importances = self.pipeline.named_steps["model"].feature_importances_
        series = pd.Series(importances, index=list(names), name="importance")
        return series.sort_values(ascending=False)

    def _build_pipeline(self, X: pd.DataFrame) -> Pipeline:
        categorical_columns = [
            col
            for col in self.feature_columns
            if isinstance(X[col].dtype, pd.CategoricalDtype) or not pd.api.types.is_numeric_dtype(X[col])
        ]
        numeric_columns = [col for col in self.feature_columns if col not in categorical_columns]

        transformers = []
        if numeric_columns:
            transformers.append(("numeric", SimpleImputer(strategy="median"), numeric_columns))
        if categorical_columns:
            encoder = OneHotEncoder(handle_unknown="ignore", sparse_output=False)
            transformers.append(("categorical", encoder, categorical_columns))

        transformer = ColumnTransformer(transformers=transformers, verbose_feature_names_out=False)

        classifier = RandomForestClassifier(
            n_estimators=self.forest_config.n_estimators,
            max_features=self.forest_config.max_features,
            min_samples_leaf=self.forest_config.min_samples_leaf,
            random_state=self.forest_config.random_state,
            n_jobs=self.forest_config.n_jobs,
            oob_score=True,
        )

        return Pipeline(steps=[("preprocess", transformer), ("model", classifier)])
