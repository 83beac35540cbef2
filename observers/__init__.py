#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Observers Module for StreamTree
Per-feature statistics collaborators and the naive Bayes scorer
"""

from .gaussian_estimator import GaussianEstimator
from .naive_bayes import NaiveBayes
from .feature_class_observer import (FeatureClassObserver, NominalFeatureClassObserver,
                                     GaussianNumericFeatureClassObserver, create_feature_class_observer)

__all__ = [
    'GaussianEstimator',
    'NaiveBayes',
    'FeatureClassObserver',
    'NominalFeatureClassObserver',
    'GaussianNumericFeatureClassObserver',
    'create_feature_class_observer'
]
