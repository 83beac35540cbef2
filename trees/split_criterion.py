#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Split Criterion Module for StreamTree
Quality measures used to rank candidate splits
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)


class SplitCriterionType(Enum):
    """Enumeration of splitting criteria"""
    INFO_GAIN = "info_gain"
    GINI = "gini"


def _as_matrix(distributions: Sequence[Sequence[float]]) -> np.ndarray:
    return np.atleast_2d(np.asarray(distributions, dtype=float))


def entropy(distribution: Sequence[float]) -> float:
    """Entropy (base 2) of a weight vector, 0 for an empty one"""
    counts = np.asarray(distribution, dtype=float)
    total = counts.sum()
    if total <= 0:
        return 0.0
    proportions = counts[counts > 0] / total
    return float(-np.sum(proportions * np.log2(proportions)))


def gini(distribution: Sequence[float]) -> float:
    """Gini impurity of a weight vector, 0 for an empty one"""
    counts = np.asarray(distribution, dtype=float)
    total = counts.sum()
    if total <= 0:
        return 0.0
    proportions = counts / total
    return float(1.0 - np.sum(proportions * proportions))


class SplitCriterion(ABC):
    """Scores a split from the pre-split and per-branch class distributions"""

    @abstractmethod
    def merit(self, pre_split_distribution: Sequence[float],
              post_split_distributions: Sequence[Sequence[float]]) -> float:
        """
        Merit of a split, higher is better

        Args:
            pre_split_distribution: Class weights before the split
            post_split_distributions: Class weights of every branch

        Returns:
            Split merit
        """
        pass

    @abstractmethod
    def range_of_merit(self, pre_split_distribution: Sequence[float]) -> float:
        pass

    def _impurity_decrease(self, impurity, pre_split_distribution, post_split_distributions) -> float:
        post = _as_matrix(post_split_distributions)
        branch_weights = post.sum(axis=1)
        total = branch_weights.sum()
        if total <= 0:
            return 0.0
        post_impurity = sum(w / total * impurity(d) for w, d in zip(branch_weights, post) if w > 0)
        return impurity(pre_split_distribution) - post_impurity


class InfoGainSplitCriterion(SplitCriterion):
    """Information gain (entropy reduction)"""

    def __init__(self, min_branch_fraction: float = 0.01):
        """
        Args:
            min_branch_fraction: Minimum share of weight at least two branches
                must hold for a multi-branch split to score above zero
        """
        self.min_branch_fraction = min_branch_fraction

    def merit(self, pre_split_distribution, post_split_distributions) -> float:
        post = _as_matrix(post_split_distributions)
        if len(post) > 1 and self._num_branches_over_min_fraction(post) < 2:
            return 0.0
        return self._impurity_decrease(entropy, pre_split_distribution, post)

    def range_of_merit(self, pre_split_distribution) -> float:
        num_classes = max(len(pre_split_distribution), 2)
        return float(np.log2(num_classes))

    def _num_branches_over_min_fraction(self, post: np.ndarray) -> int:
        branch_weights = post.sum(axis=1)
        total = branch_weights.sum()
        if total <= 0:
            return 0
        return int(np.sum(branch_weights / total >= self.min_branch_fraction))

    def __repr__(self) -> str:
        return f"InfoGainSplitCriterion(min_branch_fraction={self.min_branch_fraction})"


class GiniSplitCriterion(SplitCriterion):
    """Gini impurity reduction"""

    def merit(self, pre_split_distribution, post_split_distributions) -> float:
        return self._impurity_decrease(gini, pre_split_distribution, post_split_distributions)

    def range_of_merit(self, pre_split_distribution) -> float:
        return 1.0

    def __repr__(self) -> str:
        return "GiniSplitCriterion()"


def create_split_criterion(criterion: Union[str, SplitCriterionType]) -> SplitCriterion:
    """
    Build a criterion from its configured name

    Args:
        criterion: 'info_gain' or 'gini' (or the enum member)

    Returns:
        SplitCriterion instance
    """
    try:
        criterion_type = SplitCriterionType(criterion)
    except ValueError:
        logger.error(f"Unknown split criterion: {criterion}")
        raise

    if criterion_type == SplitCriterionType.GINI:
        return GiniSplitCriterion()
    return InfoGainSplitCriterion()
