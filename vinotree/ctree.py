"""Conditional inference trees for classification.

Variable selection and stopping follow the permutation test framework of
Hothorn, Hornik & Zeileis (2006): at every node the association between each
input and the response is measured by a linear statistic whose conditional
mean and covariance under the permutation null are known in closed form
(Strasser & Weber, 1999). The quadratic form of the standardized statistic is
compared against a chi-squared distribution, p-values are adjusted for the
number of inputs, and the node is split only when the smallest adjusted
p-value falls below ``1 - mincriterion``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import numpy as np
import pandas as pd
from scipy import stats

TEST_TYPES = ("bonferroni", "univariate")
TOLERANCE = float(np.sqrt(np.finfo(float).eps))


@dataclass
class CTreeNode:
    """A node of a fitted tree; terminal when ``variable`` is ``None``."""

    node_id: int
    depth: int
    class_counts: np.ndarray
    p_value: float = float("nan")
    statistic: float = float("nan")
    variable: str | None = None
    threshold: float | None = None
    left_levels: frozenset = field(default_factory=frozenset)
    missing_goes_left: bool = True
    left: CTreeNode | None = None
    right: CTreeNode | None = None

    @property
    def n(self) -> int:
        return int(self.class_counts.sum())

    @property
    def is_leaf(self) -> bool:
        return self.variable is None

    @property
    def probabilities(self) -> np.ndarray:
        total = self.class_counts.sum()
        if total == 0:
            return np.full(len(self.class_counts), 1.0 / len(self.class_counts))
        return self.class_counts / total


@dataclass(frozen=True)
class _Variable:
    name: str
    categorical: bool
    levels: tuple = ()


def quadratic_test(g: np.ndarray, h: np.ndarray) -> tuple[float, float]:
    """Permutation test of independence between transformations ``g`` (n x p) and ``h`` (n x q).

    Returns the quadratic test statistic and its asymptotic chi-squared p-value.
    """
    n = g.shape[0]
    if n < 2:
        return 0.0, 1.0
    centered_h = h - h.mean(axis=0)
    centered_g = g - g.mean(axis=0)
    covariance_h = centered_h.T @ centered_h / n
    # T - mu and Sigma written with centered g, algebraically equal to the Strasser-Weber forms
    diff = (g.T @ centered_h).ravel()
    sigma = n / (n - 1) * np.kron(centered_g.T @ centered_g, covariance_h)
    inverse, degrees = generalized_inverse(sigma)
    if degrees == 0:
        return 0.0, 1.0
    statistic = max(float(diff @ inverse @ diff), 0.0)
    return statistic, float(stats.chi2.sf(statistic, degrees))


def generalized_inverse(matrix: np.ndarray, tol: float = TOLERANCE) -> tuple[np.ndarray, int]:
    """Moore-Penrose inverse and rank of a symmetric positive semi-definite matrix.

    Eigenvalues below ``tol`` times the largest one count as zero.
    """
    values, vectors = np.linalg.eigh(matrix)
    largest = values.max(initial=0.0)
    if largest <= 0.0:
        return np.zeros_like(matrix), 0
    keep = values > tol * largest
    kept = vectors[:, keep]
    return (kept / values[keep]) @ kept.T, int(keep.sum())


def adjust_p_value(p_value: float, n_tests: int, testtype: str) -> float:
    if testtype == "univariate" or n_tests <= 1:
        return p_value
    if p_value >= 1.0:
        return 1.0
    return float(-np.expm1(n_tests * np.log1p(-p_value)))


class ConditionalInferenceTree:
    """Binary classification tree grown with conditional inference splits.

    Inputs may be numeric or categorical (``category``, ``object`` or ``bool``
    dtype). Missing values are ignored when testing and searching for a split
    and are sent to the larger child afterwards.
    """

    def __init__(
        self,
        mincriterion: float = 0.95,
        minsplit: int = 20,
        minbucket: int = 7,
        maxdepth: int | None = None,
        testtype: str = "bonferroni",
    ) -> None:
        if not 0.0 <= mincriterion <= 1.0:
            raise ValueError(f"mincriterion must be in [0, 1], got {mincriterion}")
        if testtype not in TEST_TYPES:
            raise ValueError(f"Unknown testtype '{testtype}', expected one of {TEST_TYPES}")
        self.mincriterion = mincriterion
        self.minsplit = minsplit
        self.minbucket = minbucket
        self.maxdepth = maxdepth
        self.testtype = testtype
        self.root_: CTreeNode | None = None
        self.classes_: np.ndarray | None = None
        self.feature_names_in_: list[str] = []
        self._variables: list[_Variable] = []

    # ------------------------------------------------------------------
    # fitting
    # ------------------------------------------------------------------
    def fit(self, X: pd.DataFrame, y: pd.Series) -> ConditionalInferenceTree:
        if len(X) != len(y):
            raise ValueError(f"X has {len(X)} rows but y has {len(y)}")
        if len(X) == 0:
            raise ValueError("Cannot fit a tree on an empty dataset")
        if pd.Series(y).isna().any():
            raise ValueError("Response contains missing values")

        labels = pd.Categorical(y)
        labels = labels.remove_unused_categories()
        self.classes_ = np.asarray(labels.categories)
        response = np.eye(len(self.classes_))[labels.codes]

        self.feature_names_in_ = list(X.columns)
        self._variables = [self._describe_variable(X[col]) for col in X.columns]
        columns = self._encode(X)

        self._next_id = 1
        self.root_ = self._grow(columns, response, np.arange(len(X)), depth=0)
        return self

    def _grow(self, columns: list[np.ndarray], response: np.ndarray, index: np.ndarray, depth: int) -> CTreeNode:
        node = CTreeNode(node_id=self._next_id, depth=depth, class_counts=response[index].sum(axis=0))
        self._next_id += 1

        if len(index) < self.minsplit or np.count_nonzero(node.class_counts) < 2:
            return node
        if self.maxdepth is not None and depth >= self.maxdepth:
            return node

        n_tests = len(self._variables)
        candidates: list[tuple[float, float, int]] = []
        for position, variable in enumerate(self._variables):
            statistic, p_value = self._association(variable, columns[position][index], response[index])
            candidates.append((adjust_p_value(p_value, n_tests, self.testtype), -statistic, position))
        candidates.sort()
        node.p_value = candidates[0][0]
        node.statistic = -candidates[0][1]

        alpha = 1.0 - self.mincriterion
        for p_value, neg_statistic, position in candidates:
            if p_value > alpha:
                break
            variable = self._variables[position]
            split = self._best_split(variable, columns[position][index], response[index])
            if split is None:
                continue
            goes_left = self._route(variable, columns[position][index], split)
            if goes_left is None:
                continue
            node.variable = variable.name
            node.p_value = p_value
            node.statistic = -neg_statistic
            if variable.categorical:
                node.left_levels = split
            else:
                node.threshold = split
            observed = self._observed(variable, columns[position][index])
            n_left = int(np.count_nonzero(goes_left & observed))
            node.missing_goes_left = n_left >= int(np.count_nonzero(observed)) - n_left
            goes_left = goes_left | (~observed & node.missing_goes_left)
            node.left = self._grow(columns, response, index[goes_left], depth + 1)
            node.right = self._grow(columns, response, index[~goes_left], depth + 1)
            return node
        return node

    def _association(self, variable: _Variable, values: np.ndarray, response: np.ndarray) -> tuple[float, float]:
        observed = self._observed(variable, values)
        if np.count_nonzero(observed) < 2:
            return 0.0, 1.0
        values = values[observed]
        if variable.categorical:
            present = np.unique(values)
            g = (values[:, None] == present[None, :]).astype(float)
        else:
            g = values[:, None].astype(float)
        return quadratic_test(g, response[observed])

    def _best_split(self, variable: _Variable, values: np.ndarray, response: np.ndarray):
        observed = self._observed(variable, values)
        values = values[observed]
        response = response[observed]
        if variable.categorical:
            present = np.unique(values)
            if len(present) < 2:
                return None
            # order levels by the share of the last class, then split along that order
            shares = np.array([response[values == level, -1].mean() for level in present])
            ordered = present[np.argsort(shares, kind="stable")]
            rank_of = np.zeros(int(present.max()) + 1)
            rank_of[ordered] = np.arange(len(ordered))
            cut = self._best_cutpoint(rank_of[values], response)
            if cut is None:
                return None
            return frozenset(variable.levels[code] for code in ordered[: int(cut) + 1])
        return self._best_cutpoint(values, response)

    def _best_cutpoint(self, values: np.ndarray, response: np.ndarray) -> float | None:
        """Cutpoint ``c`` maximizing the two-sample statistic of ``x <= c`` against the response."""
        n = len(values)
        order = np.argsort(values, kind="stable")
        sorted_values = values[order]
        cumulative = np.cumsum(response[order], axis=0)
        positions = np.flatnonzero(np.diff(sorted_values) > 0)
        n_left = positions + 1
        admissible = (n_left >= self.minbucket) & (n - n_left >= self.minbucket)
        positions = positions[admissible]
        if len(positions) == 0:
            return None
        n_left = (positions + 1).astype(float)

        expectation_h = response.mean(axis=0)
        centered = response - expectation_h
        precision, _ = generalized_inverse(centered.T @ centered / n)
        diff = cumulative[positions] - n_left[:, None] * expectation_h
        scale = (n - 1) / (n_left * (n - n_left))
        statistics = np.einsum("ij,jk,ik->i", diff, precision, diff) * scale
        return float(sorted_values[positions[int(np.argmax(statistics))]])

    def _route(self, variable: _Variable, values: np.ndarray, split) -> np.ndarray | None:
        if variable.categorical:
            codes = [variable.levels.index(level) for level in split]
            goes_left = np.isin(values, codes)
        else:
            with np.errstate(invalid="ignore"):
                goes_left = values <= split
        observed = self._observed(variable, values)
        n_left = np.count_nonzero(goes_left & observed)
        if n_left == 0 or n_left == np.count_nonzero(observed):
            return None
        return goes_left

    # ------------------------------------------------------------------
    # prediction
    # ------------------------------------------------------------------
    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        root = self._check_fitted()
        columns = self._encode(X)
        proba = np.empty((len(X), len(self.classes_)))
        for node, index in self._assign(root, columns, np.arange(len(X))):
            proba[index] = node.probabilities
        return proba

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def apply(self, X: pd.DataFrame) -> np.ndarray:
        """Return the id of the terminal node each row falls into."""
        root = self._check_fitted()
        columns = self._encode(X)
        leaves = np.empty(len(X), dtype=int)
        for node, index in self._assign(root, columns, np.arange(len(X))):
            leaves[index] = node.node_id
        return leaves

    def _assign(self, node: CTreeNode, columns: list[np.ndarray], index: np.ndarray) -> Iterator[tuple[CTreeNode, np.ndarray]]:
        if node.is_leaf or len(index) == 0:
            yield node, index
            return
        position = self.feature_names_in_.index(node.variable)
        variable = self._variables[position]
        values = columns[position][index]
        if variable.categorical:
            codes = [variable.levels.index(level) for level in node.left_levels]
            goes_left = np.isin(values, codes)
        else:
            with np.errstate(invalid="ignore"):
                goes_left = values <= node.threshold
        goes_left = goes_left | (~self._observed(variable, values) & node.missing_goes_left)
        yield from self._assign(node.left, columns, index[goes_left])
        yield from self._assign(node.right, columns, index[~goes_left])

    # ------------------------------------------------------------------
    # inspection
    # ------------------------------------------------------------------
    def nodes(self) -> Iterator[CTreeNode]:
        stack = [self._check_fitted()]
        while stack:
            node = stack.pop()
            yield node
            if not node.is_leaf:
                stack.extend([node.right, node.left])

    @property
    def n_terminal_nodes(self) -> int:
        return sum(1 for node in self.nodes() if node.is_leaf)

    @property
    def depth(self) -> int:
        return max(node.depth for node in self.nodes())

    def describe(self, digits: int = 3) -> str:
        """Render the fitted tree as indented text."""
        lines: list[str] = []
        self._describe_node(self._check_fitted(), lines, "", digits)
        return "\n".join(lines)

    def _describe_node(self, node: CTreeNode, lines: list[str], indent: str, digits: int) -> None:
        if node.is_leaf:
            shares = ", ".join(
                f"{label}: {share:.{digits}f}" for label, share in zip(self.classes_, node.probabilities)
            )
            lines.append(f"{indent}[{node.node_id}]* n = {node.n}; {shares}")
            return
        lines.append(
            f"{indent}[{node.node_id}] {node.variable} (n = {node.n}, {_format_p(node.p_value)})"
        )
        left_rule, right_rule = self._rules(node, digits)
        lines.append(f"{indent}|   {left_rule}")
        self._describe_node(node.left, lines, indent + "|   |   ", digits)
        lines.append(f"{indent}|   {right_rule}")
        self._describe_node(node.right, lines, indent + "|   |   ", digits)

    def _rules(self, node: CTreeNode, digits: int) -> tuple[str, str]:
        if node.threshold is not None:
            cut = f"{node.threshold:.{digits}g}"
            return f"{node.variable} <= {cut}", f"{node.variable} > {cut}"
        position = self.feature_names_in_.index(node.variable)
        levels = self._variables[position].levels
        left = [str(level) for level in levels if level in node.left_levels]
        right = [str(level) for level in levels if level not in node.left_levels]
        return f"{node.variable} in {{{', '.join(left)}}}", f"{node.variable} in {{{', '.join(right)}}}"

    # ------------------------------------------------------------------
    # encoding helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _describe_variable(column: pd.Series) -> _Variable:
        if isinstance(column.dtype, pd.CategoricalDtype):
            return _Variable(str(column.name), True, tuple(column.cat.categories))
        if pd.api.types.is_bool_dtype(column) or not pd.api.types.is_numeric_dtype(column):
            return _Variable(str(column.name), True, tuple(sorted(column.dropna().unique())))
        return _Variable(str(column.name), False)

    def _encode(self, X: pd.DataFrame) -> list[np.ndarray]:
        missing = [name for name in self.feature_names_in_ if name not in X.columns]
        if missing:
            raise ValueError(f"Missing feature columns: {missing}")
        columns: list[np.ndarray] = []
        for variable in self._variables:
            column = X[variable.name]
            if variable.categorical:
                codes = pd.Categorical(column, categories=list(variable.levels)).codes
                columns.append(np.asarray(codes, dtype=int))
            else:
                columns.append(pd.to_numeric(column, errors="coerce").to_numpy(dtype=float))
        return columns

    @staticmethod
    def _observed(variable: _Variable, values: np.ndarray) -> np.ndarray:
        if variable.categorical:
            return values >= 0
        return ~np.isnan(values)

    def _check_fitted(self) -> CTreeNode:
        if self.root_ is None:
            raise RuntimeError("Model has not been trained yet.")
        return self.root_


def _format_p(p_value: float) -> str:
    if np.isnan(p_value):
        return "p = NA"
    if p_value < 0.001:
        return "p < 0.001"
    return f"p = {p_value:.3f}"
