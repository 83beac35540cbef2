#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Naive Bayes Module for StreamTree
Scores an example against a leaf's class distribution and feature observers
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from streams.example import Example

logger = logging.getLogger(__name__)

# Floor for per-feature likelihoods so one unseen value does not zero a class
MIN_LIKELIHOOD = 1e-300


class NaiveBayes:
    """Naive Bayes scoring over per-feature class observers"""

    @staticmethod
    def predict(example: Example, class_distribution: Sequence[float],
                observers: Optional[Sequence['FeatureClassObserver']]) -> np.ndarray:
        """
        Per-class scores for an example

        Args:
            example: Record to score
            class_distribution: Class weights used as the prior
            observers: One observer per feature (None if the leaf has none yet)

        Returns:
            Normalised class probabilities, all zeros for an empty distribution
        """
        prior = np.asarray(class_distribution, dtype=float)
        total = prior.sum()
        if total <= 0:
            return np.zeros(len(prior))
        if not observers:
            return prior / total

        log_votes = np.full(len(prior), -np.inf)
        for c in np.flatnonzero(prior > 0):
            score = math.log(prior[c] / total)
            for i, observer in enumerate(observers):
                if i >= example.num_features:
                    break
                value = example.feature_at(i)
                if math.isnan(value):
                    continue
                likelihood = observer.probability_of_value_given_class(value, int(c))
                score += math.log(max(likelihood, MIN_LIKELIHOOD))
            log_votes[c] = score

        finite = np.isfinite(log_votes)
        votes = np.zeros(len(prior))
        votes[finite] = np.exp(log_votes[finite] - log_votes[finite].max())
        return votes / votes.sum()
