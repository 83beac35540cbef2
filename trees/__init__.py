#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Trees Module for StreamTree
Node hierarchy of the Hoeffding tree and the model that drives it
"""

from .errors import TreeStructureError, StructuralMismatchError, GraftIndexError
from .feature_split import FeatureSplit, best_split
from .split_criterion import (SplitCriterion, SplitCriterionType, InfoGainSplitCriterion,
                              GiniSplitCriterion, create_split_criterion)
from .conditional_test import ConditionalTest, NumericBinaryTest, NominalBinaryTest, NominalMultiwayTest
from .node import (Node, FoundNode, SplitNode, LearningNode, ActiveLearningNode, InactiveLearningNode,
                   LearningNodeNB, LearningNodeNBAdaptive)
from .hoeffding_tree import HoeffdingTreeModel, LeafPrediction

__all__ = [
    'TreeStructureError',
    'StructuralMismatchError',
    'GraftIndexError',
    'FeatureSplit',
    'best_split',
    'SplitCriterion',
    'SplitCriterionType',
    'InfoGainSplitCriterion',
    'GiniSplitCriterion',
    'create_split_criterion',
    'ConditionalTest',
    'NumericBinaryTest',
    'NominalBinaryTest',
    'NominalMultiwayTest',
    'Node',
    'FoundNode',
    'SplitNode',
    'LearningNode',
    'ActiveLearningNode',
    'InactiveLearningNode',
    'LearningNodeNB',
    'LearningNodeNBAdaptive',
    'HoeffdingTreeModel',
    'LeafPrediction'
]
