from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from scipy.stats import chi2_contingency

from vinotree.ctree import ConditionalInferenceTree, adjust_p_value, generalized_inverse, quadratic_test


def _separable(n: int = 200, seed: int = 0) -> tuple[pd.DataFrame, pd.Series]:
    rng = np.random.default_rng(seed)
    X = pd.DataFrame({"x1": rng.uniform(0, 1, n), "x2": rng.normal(0, 1, n)})
    y = pd.Series(np.where(X["x1"] > 0.5, "yes", "no"))
    return X, y


def test_quadratic_test_matches_pearson_chi_square_for_two_by_two() -> None:
    rng = np.random.default_rng(4)
    group = rng.random(120) < 0.4
    outcome = rng.random(120) < np.where(group, 0.7, 0.3)
    g = group.astype(float)[:, None]
    h = np.column_stack([~outcome, outcome]).astype(float)

    statistic, p_value = quadratic_test(g, h)
    table = pd.crosstab(group, outcome).to_numpy()
    pearson = chi2_contingency(table, correction=False)[0]

    assert statistic == pytest.approx(pearson * 119 / 120, rel=1e-8)
    assert 0.0 <= p_value <= 1.0


def test_quadratic_test_matches_pearson_across_tables() -> None:
    for seed in range(300):
        rng = np.random.default_rng(seed)
        n = int(rng.integers(40, 200))
        group = rng.random(n) < rng.uniform(0.2, 0.8)
        outcome = rng.random(n) < np.where(group, rng.uniform(0.2, 0.8), rng.uniform(0.2, 0.8))
        table = pd.crosstab(group, outcome).to_numpy()
        if table.shape != (2, 2):
            continue
        g = group.astype(float)[:, None]
        h = np.column_stack([~outcome, outcome]).astype(float)

        statistic, _ = quadratic_test(g, h)
        pearson = chi2_contingency(table, correction=False)[0]

        assert statistic == pytest.approx(pearson * (n - 1) / n, rel=1e-6, abs=1e-9), seed


def test_generalized_inverse_ignores_rounding_noise() -> None:
    rng = np.random.default_rng(8)
    outcome = rng.random(150) < 0.3
    h = np.column_stack([~outcome, outcome]).astype(float)
    centered = h - h.mean(axis=0)
    covariance = centered.T @ centered / len(h)

    inverse, rank = generalized_inverse(covariance)

    assert rank == 1
    assert np.abs(inverse).max() < 100
    assert np.allclose(covariance @ inverse @ covariance, covariance)
    assert generalized_inverse(np.zeros((2, 2)))[1] == 0


def test_quadratic_test_numeric_is_scaled_squared_correlation() -> None:
    rng = np.random.default_rng(5)
    x = rng.normal(size=80)
    outcome = (x + rng.normal(size=80)) > 0
    h = np.column_stack([~outcome, outcome]).astype(float)

    statistic, _ = quadratic_test(x[:, None], h)
    r = np.corrcoef(x, outcome.astype(float))[0, 1]

    assert statistic == pytest.approx(79 * r**2, rel=1e-8)


def test_quadratic_test_constant_input_has_no_evidence() -> None:
    h = np.eye(2)[[0, 1, 0, 1, 1]]
    assert quadratic_test(np.ones((5, 1)), h) == (0.0, 1.0)


def test_adjust_p_value() -> None:
    assert adjust_p_value(0.01, 1, "bonferroni") == pytest.approx(0.01)
    assert adjust_p_value(0.01, 3, "bonferroni") == pytest.approx(1 - 0.99**3)
    assert adjust_p_value(0.01, 3, "univariate") == pytest.approx(0.01)
    assert adjust_p_value(1.0, 5, "bonferroni") == 1.0


def test_tree_splits_on_informative_variable() -> None:
    X, y = _separable()
    tree = ConditionalInferenceTree().fit(X, y)

    assert tree.root_.variable == "x1"
    assert tree.root_.p_value < 0.001
    assert tree.n_terminal_nodes == 2
    assert tree.depth == 1
    assert list(tree.classes_) == ["no", "yes"]
    assert (tree.predict(X) == y.to_numpy()).all()


def test_tree_finds_separating_cutpoint_for_many_samples() -> None:
    for seed in range(100):
        X, y = _separable(seed=seed)
        tree = ConditionalInferenceTree(maxdepth=1).fit(X, y)

        assert tree.root_.variable == "x1", seed
        assert tree.root_.threshold == X.loc[X["x1"] <= 0.5, "x1"].max(), seed
        assert (tree.predict(X) == y.to_numpy()).all(), seed


def test_tree_does_not_split_on_noise() -> None:
    rng = np.random.default_rng(11)
    X = pd.DataFrame({"a": rng.normal(size=150), "b": rng.normal(size=150)})
    y = pd.Series(rng.choice(["no", "yes"], size=150))
    tree = ConditionalInferenceTree(mincriterion=0.999).fit(X, y)

    assert tree.root_.is_leaf
    proba = tree.predict_proba(X)
    assert np.allclose(proba[:, 1], (y == "yes").mean())


def test_tree_respects_minbucket_and_minsplit() -> None:
    X, y = _separable(n=60, seed=3)
    tree = ConditionalInferenceTree(minbucket=10, minsplit=20).fit(X, y)

    for node in tree.nodes():
        if node.is_leaf:
            assert node.n >= 10
        else:
            assert node.n >= 20

    single = ConditionalInferenceTree(minsplit=61).fit(X, y)
    assert single.n_terminal_nodes == 1


def test_tree_maxdepth_zero_gives_root_only() -> None:
    X, y = _separable()
    tree = ConditionalInferenceTree(maxdepth=0).fit(X, y)

    assert tree.n_terminal_nodes == 1
    assert np.allclose(tree.predict_proba(X).sum(axis=1), 1.0)


def test_tree_categorical_split_groups_levels() -> None:
    colours = np.repeat(["a", "b", "c"], 30)
    X = pd.DataFrame({"colour": colours, "noise": np.tile(np.linspace(0, 1, 30), 3)})
    y = pd.Series(np.where(colours == "b", "no", "yes"))
    tree = ConditionalInferenceTree().fit(X, y)

    assert tree.root_.variable == "colour"
    assert tree.root_.left_levels == frozenset({"b"})
    assert (tree.predict(X) == y.to_numpy()).all()
    assert "colour in {b}" in tree.describe()


def test_tree_routes_missing_and_unseen_values() -> None:
    X, y = _separable()
    tree = ConditionalInferenceTree().fit(X, y)
    new = pd.DataFrame({"x1": [np.nan, 0.1, 0.9], "x2": [0.0, 0.0, 0.0]})

    proba = tree.predict_proba(new)
    leaves = tree.apply(new)

    assert proba.shape == (3, 2)
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert leaves[1] != leaves[2]
    assert leaves[0] in (leaves[1], leaves[2])


def test_tree_sends_missing_values_to_larger_child() -> None:
    x1 = np.concatenate([np.linspace(0, 1, 100), [np.nan] * 5])
    X = pd.DataFrame({"x1": x1})
    y = pd.Series(np.where(np.isnan(x1) | (x1 > 0.3), "yes", "no"))
    tree = ConditionalInferenceTree().fit(X, y)

    # 30 observed rows fall left of the cut and 70 right
    assert tree.root_.threshold == pytest.approx(29 / 99)
    assert tree.root_.missing_goes_left is False
    assert tree.root_.left.n == 30
    assert tree.root_.right.n == 75

    new = pd.DataFrame({"x1": [np.nan, 0.1, 0.9]})
    leaves = tree.apply(new)
    assert leaves[0] == leaves[2] != leaves[1]
    assert list(tree.predict(new)) == ["yes", "no", "yes"]


def test_tree_describe_lists_nodes() -> None:
    X, y = _separable()
    text = ConditionalInferenceTree().fit(X, y).describe()

    assert text.startswith("[1] x1 (n = 200, p < 0.001)")
    assert "[2]*" in text
    assert "[3]*" in text


def test_tree_requires_fit_and_valid_input() -> None:
    X, y = _separable()
    with pytest.raises(RuntimeError, match="not been trained"):
        ConditionalInferenceTree().predict(X)
    with pytest.raises(ValueError):
        ConditionalInferenceTree().fit(X, y.iloc[:10])
    with pytest.raises(ValueError):
        ConditionalInferenceTree(testtype="holm")
    tree = ConditionalInferenceTree().fit(X, y)
    with pytest.raises(ValueError, match="x2"):
        tree.predict(X[["x1"]])
