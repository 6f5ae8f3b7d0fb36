from __future__ import annotations

import math

import pandas as pd
import pytest
from scipy import stats

from vinotree.evaluation import evaluate_predictions, threshold_probabilities


ACTUAL = pd.Series(["yes", "yes", "no", "no", "yes"])
PROBA = pd.Series([0.9, 0.4, 0.2, 0.6, 0.7])


def test_threshold_probabilities() -> None:
    labels = threshold_probabilities(pd.Series([0.2, 0.5, 0.51]), threshold=0.5)

    assert list(labels.astype(str)) == ["no", "yes", "yes"]
    assert list(labels.cat.categories) == ["no", "yes"]


@pytest.mark.parametrize("threshold", [-0.1, 1.1])
def test_threshold_probabilities_rejects_out_of_range(threshold: float) -> None:
    with pytest.raises(ValueError, match="threshold"):
        threshold_probabilities(PROBA, threshold=threshold)


def test_threshold_probabilities_rejects_nan() -> None:
    with pytest.raises(ValueError, match="NaN"):
        threshold_probabilities(pd.Series([0.1, float("nan")]))


def test_evaluate_predictions_counts_and_rates() -> None:
    result = evaluate_predictions(ACTUAL, PROBA, threshold=0.5)

    assert (result.true_positives, result.false_negatives) == (2, 1)
    assert (result.true_negatives, result.false_positives) == (1, 1)
    assert result.total == 5
    assert result.accuracy == pytest.approx(0.6)
    assert result.sensitivity == pytest.approx(2 / 3)
    assert result.specificity == pytest.approx(0.5)
    assert result.precision == pytest.approx(2 / 3)
    assert result.negative_predictive_value == pytest.approx(0.5)
    assert result.prevalence == pytest.approx(0.6)
    assert result.no_information_rate == pytest.approx(0.6)
    assert result.balanced_accuracy == pytest.approx(7 / 12)
    assert result.f1 == pytest.approx(2 / 3)
    assert result.kappa == pytest.approx(1 / 6)
    assert result.roc_auc == pytest.approx(5 / 6)


def test_evaluate_predictions_inference_statistics() -> None:
    result = evaluate_predictions(ACTUAL, PROBA, threshold=0.5)

    low, high = result.accuracy_ci
    assert low == pytest.approx(stats.beta.ppf(0.025, 3, 3))
    assert high == pytest.approx(stats.beta.ppf(0.975, 4, 2))
    expected_p = stats.binomtest(3, 5, p=0.6, alternative="greater").pvalue
    assert result.accuracy_p_value == pytest.approx(expected_p)


def test_threshold_changes_confusion_matrix() -> None:
    result = evaluate_predictions(ACTUAL, PROBA, threshold=0.8)

    assert result.true_positives == 1
    assert result.false_positives == 0
    assert result.precision == pytest.approx(1.0)
    assert result.threshold == 0.8


def test_undefined_rates_are_nan() -> None:
    result = evaluate_predictions(pd.Series(["no", "no", "no"]), pd.Series([0.1, 0.2, 0.3]))

    assert result.accuracy == pytest.approx(1.0)
    assert math.isnan(result.sensitivity)
    assert math.isnan(result.precision)
    assert math.isnan(result.roc_auc)
    assert result.accuracy_ci[1] == 1.0


def test_confusion_frame_layout() -> None:
    frame = evaluate_predictions(ACTUAL, PROBA).confusion_frame()

    assert frame.loc["yes", "yes"] == 2
    assert frame.loc["yes", "no"] == 1
    assert frame.loc["no", "yes"] == 1
    assert frame.loc["no", "no"] == 1
    assert frame.index.name == "predicted"
    assert frame.columns.name == "actual"


def test_evaluate_predictions_validates_inputs() -> None:
    with pytest.raises(ValueError, match="labels"):
        evaluate_predictions(ACTUAL, PROBA.iloc[:3])
    with pytest.raises(ValueError, match="maybe"):
        evaluate_predictions(pd.Series(["yes", "maybe"]), pd.Series([0.1, 0.2]))
