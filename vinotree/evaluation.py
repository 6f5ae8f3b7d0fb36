"""Scoring of held-out predictions: thresholding and confusion-matrix statistics."""
from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import confusion_matrix, roc_auc_score

from .data_models import EvaluationResult


def threshold_probabilities(
    proba: pd.Series,
    threshold: float = 0.5,
    positive_label: str = "yes",
    negative_label: str = "no",
) -> pd.Series:
    """Label rows with ``proba >= threshold`` as positive, the rest as negative."""
    _check_threshold(threshold)
    proba = pd.Series(proba)
    if proba.isna().any():
        raise ValueError("Predicted probabilities contain NaNs")
    labels = np.where(proba.to_numpy(dtype=float) >= threshold, positive_label, negative_label)
    return pd.Series(
        pd.Categorical(labels, categories=[negative_label, positive_label]),
        index=proba.index,
        name="predicted",
    )


def evaluate_predictions(
    actual: pd.Series,
    proba: pd.Series,
    threshold: float = 0.5,
    positive_label: str = "yes",
    negative_label: str = "no",
) -> EvaluationResult:
    actual = pd.Series(actual).astype(str)
    proba = pd.Series(proba)
    if len(actual) != len(proba):
        raise ValueError(f"Got {len(actual)} labels but {len(proba)} predictions")
    unexpected = set(actual.unique()) - {positive_label, negative_label}
    if unexpected:
        raise ValueError(f"Unexpected labels in actual outcomes: {sorted(unexpected)}")

    predicted = threshold_probabilities(proba, threshold, positive_label, negative_label).astype(str)
    matrix = confusion_matrix(
        actual.to_numpy(),
        predicted.to_numpy(),
        labels=[negative_label, positive_label],
    )
    tn, fp, fn, tp = (int(value) for value in matrix.ravel())
    total = tn + fp + fn + tp

    correct = tp + tn
    accuracy = _safe_div(correct, total)
    positives = tp + fn
    prevalence = _safe_div(positives, total)
    no_information_rate = max(prevalence, 1 - prevalence) if total else float("nan")

    expected = _safe_div((tp + fp) * (tp + fn) + (tn + fn) * (tn + fp), total**2)
    kappa = _safe_div(accuracy - expected, 1 - expected)

    sensitivity = _safe_div(tp, tp + fn)
    specificity = _safe_div(tn, tn + fp)

    return EvaluationResult(
        true_positives=tp,
        false_positives=fp,
        true_negatives=tn,
        false_negatives=fn,
        threshold=threshold,
        positive_label=positive_label,
        accuracy=accuracy,
        accuracy_ci=_clopper_pearson(correct, total),
        no_information_rate=no_information_rate,
        accuracy_p_value=_accuracy_p_value(correct, total, no_information_rate),
        kappa=kappa,
        sensitivity=sensitivity,
        specificity=specificity,
        precision=_safe_div(tp, tp + fp),
        negative_predictive_value=_safe_div(tn, tn + fn),
        prevalence=prevalence,
        balanced_accuracy=(sensitivity + specificity) / 2,
        f1=_safe_div(2 * tp, 2 * tp + fp + fn),
        roc_auc=_roc_auc(actual == positive_label, proba),
    )


def _safe_div(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return float("nan")
    return float(numerator / denominator)


def _clopper_pearson(successes: int, trials: int, level: float = 0.95) -> tuple[float, float]:
    if trials == 0:
        return float("nan"), float("nan")
    tail = (1 - level) / 2
    lower = 0.0 if successes == 0 else float(stats.beta.ppf(tail, successes, trials - successes + 1))
    upper = 1.0 if successes == trials else float(stats.beta.ppf(1 - tail, successes + 1, trials - successes))
    return lower, upper


def _accuracy_p_value(successes: int, trials: int, no_information_rate: float) -> float:
    """One-sided binomial test that accuracy exceeds the no-information rate."""
    if trials == 0 or np.isnan(no_information_rate):
        return float("nan")
    return float(stats.binomtest(successes, trials, p=no_information_rate, alternative="greater").pvalue)


def _roc_auc(is_positive: pd.Series, proba: pd.Series) -> float:
    if is_positive.nunique() < 2:
        return float("nan")
    return float(roc_auc_score(is_positive.to_numpy(), proba.to_numpy(dtype=float)))


def _check_threshold(threshold: float) -> None:
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be in [0, 1], got {threshold}")
