"""Reporting utilities for the wine-quality tree models."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from textwrap import dedent

import pandas as pd

from .config import DataPaths
from .data_models import DataValidationResult, DatasetSplit, ModelEvaluation


class ReportGenerator:
    """Builds lightweight markdown reports of a modeling run."""

    def __init__(self, paths: DataPaths) -> None:
        self.paths = paths

    def create_report(
        self,
        evaluations: dict[str, ModelEvaluation],
        split: DatasetSplit,
        data_health: DataValidationResult | None,
        feature_importances: pd.Series | None = None,
        top_k: int = 10,
    ) -> Path:
        self.paths.report_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        report_path = self.paths.report_dir / "latest_report.md"

        header = dedent(
            f"""
            # Wine quality tree models ({timestamp})
            Low-quality wines are predicted from physicochemical measurements of red and white vinho verde samples.
            """
        ).strip()

        lines = [header, "", "## Data health"]
        if data_health is None:
            lines.append("- No validation stats available.")
        else:
            counts = ", ".join(f"{name}: {count}" for name, count in data_health.category_counts.items())
            dropped_columns = ", ".join(data_health.dropped_empty_columns) or "none"
            lines.extend(
                [
                    f"- Raw rows: {data_health.raw_rows}",
                    f"- Rows after cleaning: {data_health.row_count} ({counts})",
                    f"- Dropped empty rows: {data_health.dropped_empty_rows}",
                    f"- Dropped empty columns: {dropped_columns}",
                    f"- Dropped rows without quality: {data_health.dropped_missing_quality}",
                    f"- Dropped rows with invalid quality: {data_health.dropped_invalid_quality}",
                    f"- Dropped rows with unknown type: {data_health.dropped_unknown_category}",
                    f"- Low-quality share: {data_health.low_quality_rate:.3f}",
                ]
            )

        lines.extend(
            [
                "",
                "## Split",
                f"- Training rows: {split.train_rows}",
                f"- Evaluation rows: {split.test_rows}",
                "",
                "## Held-out metrics",
                "| Model | Train rows | Accuracy | 95% CI | Kappa | Sensitivity | Specificity | Precision | ROC AUC |",
                "| --- | --- | --- | --- | --- | --- | --- | --- | --- |",
            ]
        )
        for evaluation in evaluations.values():
            result = evaluation.result
            low, high = result.accuracy_ci
            lines.append(
                f"| {evaluation.name} | {evaluation.train_rows} | {result.accuracy:.3f} | "
                f"{low:.3f}-{high:.3f} | {result.kappa:.3f} | {result.sensitivity:.3f} | "
                f"{result.specificity:.3f} | {result.precision:.3f} | {result.roc_auc:.3f} |"
            )

        for evaluation in evaluations.values():
            result = evaluation.result
            frame = result.confusion_frame()
            lines.extend(
                [
                    "",
                    f"### {evaluation.name} confusion matrix (threshold {result.threshold:.2f})",
                    "| predicted \\ actual | " + " | ".join(str(col) for col in frame.columns) + " |",
                    "| --- | " + " | ".join("---" for _ in frame.columns) + " |",
                ]
            )
            for label, row in frame.iterrows():
                lines.append(f"| {label} | " + " | ".join(str(value) for value in row) + " |")
            lines.append(
                f"\nNo-information rate {result.no_information_rate:.3f}, "
                f"P(accuracy > NIR) = {result.accuracy_p_value:.3g}"
            )
            if evaluation.details:
                lines.extend(["", "```", evaluation.details, "```"])

        if feature_importances is not None and not feature_importances.empty:
            lines.extend(["", f"## Top {top_k} random forest features", "| Feature | Importance |", "| --- | --- |"])
            for name, value in feature_importances.head(top_k).items():
                lines.append(f"| {name} | {value:.4f} |")

        content = "\n".join(lines) + "\n"
        report_path.write_text(content, encoding="utf-8")
        return report_path
