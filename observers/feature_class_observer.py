#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Feature Class Observer Module for StreamTree
Per-feature online statistics that learn (label, value, weight) triples
and propose the best split for their feature
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from observers.gaussian_estimator import GaussianEstimator
from streams.example import FeatureType
from trees.conditional_test import NominalBinaryTest, NominalMultiwayTest, NumericBinaryTest
from trees.errors import StructuralMismatchError
from trees.feature_split import FeatureSplit
from trees.split_criterion import SplitCriterion

logger = logging.getLogger(__name__)

DEFAULT_NUMERIC_BINS = 10


class FeatureClassObserver(ABC):
    """Online accumulator for one feature"""

    def __init__(self, num_classes: int, feature_index: int = 0):
        self.num_classes = num_classes
        self.feature_index = feature_index

    @abstractmethod
    def observe_class(self, class_index: int, value: float, weight: float) -> None:
        pass

    @abstractmethod
    def best_split(self, criterion: SplitCriterion, pre_split_distribution: Sequence[float],
                   feature_index: int, binary_only: bool) -> Optional[FeatureSplit]:
        """
        Best candidate split on this feature

        Args:
            criterion: Merit function
            pre_split_distribution: Class weights at the leaf
            feature_index: Index the conditional test should read
            binary_only: Restrict candidates to two-way splits

        Returns:
            Best FeatureSplit, or None when the feature cannot be split yet
        """
        pass

    @abstractmethod
    def merge(self, other: 'FeatureClassObserver', try_split: bool) -> 'FeatureClassObserver':
        pass

    @abstractmethod
    def probability_of_value_given_class(self, value: float, class_index: int) -> float:
        pass

    def _check_mergeable(self, other: 'FeatureClassObserver') -> None:
        if type(other) is not type(self) or other.num_classes != self.num_classes:
            message = (f"Cannot merge {type(other).__name__}({other.num_classes} classes) "
                       f"into {type(self).__name__}({self.num_classes} classes) for feature {self.feature_index}")
            logger.error(message)
            raise StructuralMismatchError(message)


class NominalFeatureClassObserver(FeatureClassObserver):
    """Weight table indexed by [value][class]"""

    def __init__(self, num_classes: int, num_values: int = 0, feature_index: int = 0,
                 value_labels: Optional[List[str]] = None):
        super().__init__(num_classes, feature_index)
        self.num_values = num_values
        self.value_labels = list(value_labels) if value_labels else None
        self.weights = np.zeros((max(num_values, 0), num_classes))

    def _ensure_rows(self, rows: int) -> None:
        if rows > len(self.weights):
            grown = np.zeros((rows, self.num_classes))
            grown[:len(self.weights)] = self.weights
            self.weights = grown

    def observe_class(self, class_index, value, weight) -> None:
        if math.isnan(value) or value < 0:
            return
        v = int(value)
        self._ensure_rows(v + 1)
        self.weights[v, class_index] += weight

    def probability_of_value_given_class(self, value, class_index) -> float:
        # Laplace smoothing over the known value count
        num_values = max(len(self.weights), self.num_values, 1)
        class_total = self.weights[:, class_index].sum() if len(self.weights) else 0.0
        v = int(value) if not math.isnan(value) and value >= 0 else -1
        observed = self.weights[v, class_index] if 0 <= v < len(self.weights) else 0.0
        return (observed + 1.0) / (class_total + num_values)

    def _labels(self) -> List[str]:
        labels = list(self.value_labels or [])
        labels.extend(str(v) for v in range(len(labels), len(self.weights)))
        return labels

    def best_split(self, criterion, pre_split_distribution, feature_index, binary_only):
        observed = np.flatnonzero(self.weights.sum(axis=1) > 0)
        if len(observed) < 2:
            return None

        labels = self._labels()
        best = None

        if not binary_only:
            post = [row.copy() for row in self.weights]
            merit = criterion.merit(pre_split_distribution, post)
            test = NominalMultiwayTest(feature_index, len(self.weights), value_labels=labels)
            best = FeatureSplit(test, merit, post)

        totals = self.weights.sum(axis=0)
        for v in observed:
            post = [self.weights[v].copy(), totals - self.weights[v]]
            merit = criterion.merit(pre_split_distribution, post)
            if best is None or merit > best.merit:
                test = NominalBinaryTest(feature_index, int(v), value_label=labels[v])
                best = FeatureSplit(test, merit, post)

        return best

    def merge(self, other, try_split):
        self._check_mergeable(other)
        self._ensure_rows(len(other.weights))
        self.weights[:len(other.weights)] += other.weights
        return self

    def __repr__(self) -> str:
        return f"NominalFeatureClassObserver(feature={self.feature_index}, weights={self.weights.tolist()})"


class GaussianNumericFeatureClassObserver(FeatureClassObserver):
    """One Gaussian estimator per class plus the observed value range per class"""

    def __init__(self, num_classes: int, feature_index: int = 0, num_bins: int = DEFAULT_NUMERIC_BINS):
        super().__init__(num_classes, feature_index)
        self.num_bins = num_bins
        self.estimators = [GaussianEstimator() for _ in range(num_classes)]
        self.min_values = np.full(num_classes, np.inf)
        self.max_values = np.full(num_classes, -np.inf)

    def observe_class(self, class_index, value, weight) -> None:
        if math.isnan(value) or weight <= 0:
            return
        self.min_values[class_index] = min(self.min_values[class_index], value)
        self.max_values[class_index] = max(self.max_values[class_index], value)
        self.estimators[class_index].add_observation(value, weight)

    def probability_of_value_given_class(self, value, class_index) -> float:
        return self.estimators[class_index].probability_density(value)

    def split_point_candidates(self) -> np.ndarray:
        observed = np.isfinite(self.min_values)
        if not observed.any():
            return np.empty(0)
        low = self.min_values[observed].min()
        high = self.max_values[observed].max()
        if not low < high:
            return np.empty(0)
        steps = np.arange(1, self.num_bins + 1) / (self.num_bins + 1)
        return low + (high - low) * steps

    def class_dists_from_binary_split(self, split_value: float) -> List[np.ndarray]:
        left = np.zeros(self.num_classes)
        right = np.zeros(self.num_classes)
        for c, estimator in enumerate(self.estimators):
            if estimator.weight_sum <= 0:
                continue
            if split_value < self.min_values[c]:
                right[c] += estimator.weight_sum
            elif split_value >= self.max_values[c]:
                left[c] += estimator.weight_sum
            else:
                less, equal, greater = estimator.weight_less_equal_greater(split_value)
                left[c] += less + equal
                right[c] += greater
        return [left, right]

    def best_split(self, criterion, pre_split_distribution, feature_index, binary_only):
        best = None
        for split_value in self.split_point_candidates():
            post = self.class_dists_from_binary_split(split_value)
            merit = criterion.merit(pre_split_distribution, post)
            if best is None or merit > best.merit:
                best = FeatureSplit(NumericBinaryTest(feature_index, split_value), merit, post)
        return best

    def merge(self, other, try_split):
        self._check_mergeable(other)
        for estimator, other_estimator in zip(self.estimators, other.estimators):
            estimator.merge(other_estimator)
        self.min_values = np.minimum(self.min_values, other.min_values)
        self.max_values = np.maximum(self.max_values, other.max_values)
        return self

    def __repr__(self) -> str:
        return f"GaussianNumericFeatureClassObserver(feature={self.feature_index}, estimators={self.estimators})"


def create_feature_class_observer(feature_type: FeatureType, num_classes: int, feature_index: int,
                                  value_range: int, num_bins: int = DEFAULT_NUMERIC_BINS) -> FeatureClassObserver:
    """
    Select the observer kind for a feature type

    Args:
        feature_type: Descriptor of the feature
        num_classes: Number of classes in the tree
        feature_index: Position of the feature in each example
        value_range: Number of nominal values (ignored for numeric features)
        num_bins: Split point candidates evaluated by numeric observers

    Returns:
        Fresh, empty FeatureClassObserver
    """
    if feature_type.is_nominal():
        return NominalFeatureClassObserver(num_classes, value_range, feature_index,
                                           getattr(feature_type, 'values', None))
    return GaussianNumericFeatureClassObserver(num_classes, feature_index, num_bins)
