"""Top-level orchestration for the wine-quality modeling workflow."""
from __future__ import annotations

from .config import DEFAULT_CONFIG, PipelineConfig
from .data_loader import WineQualityLoader
from .data_models import DataValidationResult, DatasetSplit, ModelEvaluation, PipelineResult
from .evaluation import evaluate_predictions
from .logging_utils import get_logger
from .modeling import BinaryClassifier, ForestClassifier, TreeClassifier
from .partitioning import rebalance_classes, stratified_split
from .reporting import ReportGenerator

logger = get_logger(__name__)


class WineQualityPipeline:
    """Coordinates ingestion, cleaning, partitioning, model fitting and evaluation."""

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.loader = WineQualityLoader(self.config.paths, self.config.cleaning)
        self.reporter = ReportGenerator(self.config.paths)
        self._data_health: DataValidationResult | None = None

    @property
    def data_health(self) -> DataValidationResult | None:
        return self._data_health

    def run(self, persist_report: bool = True) -> PipelineResult:
        cleaning = self.config.cleaning
        split_config = self.config.split

        raw_df = self.loader.load_raw()
        dataset, validation = self.loader.clean_and_validate(raw_df)
        self._data_health = validation
        features = self.loader.feature_columns(dataset)

        split = stratified_split(
            dataset,
            cleaning.label_column,
            train_fraction=split_config.train_fraction,
            random_state=split_config.random_state,
        )

        positive = self.config.evaluation.positive_label
        tree = TreeClassifier(self.config.tree, features, cleaning.label_column, positive)
        tree.fit(split.train)

        # The forest sees a class-rebalanced copy of the same training rows.
        balanced_train = rebalance_classes(
            split.train,
            cleaning.label_column,
            method=split_config.rebalance,
            random_state=split_config.random_state,
        )
        forest = ForestClassifier(self.config.forest, features, cleaning.label_column, positive)
        forest.fit(balanced_train)

        evaluations = {
            tree.name: self._evaluate(tree, split, len(split.train), details=tree.describe()),
            forest.name: self._evaluate(forest, split, len(balanced_train)),
        }
        importances = forest.feature_importances()

        report_path = None
        if persist_report:
            report_path = self.reporter.create_report(
                evaluations=evaluations,
                split=split,
                data_health=self._data_health,
                feature_importances=importances,
            )
            logger.info("Report written to %s", report_path)

        return PipelineResult(
            evaluations=evaluations,
            models={tree.name: tree, forest.name: forest},
            report_path=report_path,
            dataset=dataset,
            split=split,
            feature_importances=importances,
            data_health=self._data_health,
        )

    def _evaluate(self, model: BinaryClassifier, split: DatasetSplit, train_rows: int, details: str = "") -> ModelEvaluation:
        evaluation_config = self.config.evaluation
        proba = model.predict_proba(split.test)
        result = evaluate_predictions(
            split.test[self.config.cleaning.label_column],
            proba,
            threshold=evaluation_config.probability_threshold,
            positive_label=evaluation_config.positive_label,
        )
        logger.info(
            "%s: accuracy %.3f, kappa %.3f, sensitivity %.3f, specificity %.3f",
            model.name,
            result.accuracy,
            result.kappa,
            result.sensitivity,
            result.specificity,
        )
        return ModelEvaluation(name=model.name, result=result, train_rows=train_rows, details=details)
