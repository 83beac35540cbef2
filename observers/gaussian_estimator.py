#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Gaussian Estimator Module for StreamTree
Incremental weighted normal distribution used by numeric feature observers
"""

import logging
import math
from typing import Tuple

from scipy.stats import norm

logger = logging.getLogger(__name__)


class GaussianEstimator:
    """Weighted running mean and variance (Welford), mergeable across copies"""

    def __init__(self):
        self.weight_sum = 0.0
        self.mean = 0.0
        self.variance_sum = 0.0

    def add_observation(self, value: float, weight: float = 1.0) -> None:
        if math.isnan(value) or weight <= 0:
            return

        if self.weight_sum > 0:
            self.weight_sum += weight
            last_mean = self.mean
            self.mean += weight * (value - last_mean) / self.weight_sum
            self.variance_sum += weight * (value - last_mean) * (value - self.mean)
        else:
            self.mean = value
            self.weight_sum = weight

    @property
    def variance(self) -> float:
        if self.weight_sum > 1.0:
            return max(self.variance_sum / (self.weight_sum - 1.0), 0.0)
        return 0.0

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def probability_density(self, value: float) -> float:
        if self.weight_sum <= 0:
            return 0.0
        std = self.std
        if std > 0:
            return float(norm.pdf(value, loc=self.mean, scale=std))
        return 1.0 if value == self.mean else 0.0

    def weight_less_equal_greater(self, value: float) -> Tuple[float, float, float]:
        """
        Estimated weight below, at and above a value

        Args:
            value: Split point

        Returns:
            (less than, equal to, greater than) weights, each non-negative
        """
        std = self.std
        if std > 0:
            equal = self.probability_density(value) * self.weight_sum
            less = float(norm.cdf(value, loc=self.mean, scale=std)) * self.weight_sum - equal
            less = max(less, 0.0)
            equal = min(equal, self.weight_sum - less)
            greater = max(self.weight_sum - equal - less, 0.0)
            return less, equal, greater

        if value < self.mean:
            return 0.0, 0.0, self.weight_sum
        if value > self.mean:
            return self.weight_sum, 0.0, 0.0
        return 0.0, self.weight_sum, 0.0

    def merge(self, other: 'GaussianEstimator') -> 'GaussianEstimator':
        """Fold another estimator into this one (parallel variance formula)"""
        if other.weight_sum <= 0:
            return self
        if self.weight_sum <= 0:
            self.weight_sum = other.weight_sum
            self.mean = other.mean
            self.variance_sum = other.variance_sum
            return self

        total = self.weight_sum + other.weight_sum
        delta = other.mean - self.mean
        self.variance_sum += other.variance_sum + delta * delta * self.weight_sum * other.weight_sum / total
        self.mean += delta * other.weight_sum / total
        self.weight_sum = total
        return self

    def __repr__(self) -> str:
        return f"GaussianEstimator(weight={self.weight_sum}, mean={self.mean:.4f}, std={self.std:.4f})"
