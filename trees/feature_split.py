#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Feature Split Module for StreamTree
Candidate split proposed by a feature observer
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class FeatureSplit:
    """
    A candidate split: the test to install, its merit and the class
    distribution each branch would start with.

    A split without a conditional test is the "do not split" candidate.
    """
    conditional_test: Optional['ConditionalTest']
    merit: float
    result_distributions: List[np.ndarray] = field(default_factory=list)

    def __post_init__(self):
        self.merit = float(self.merit)
        self.result_distributions = [np.asarray(d, dtype=float) for d in self.result_distributions]

    def num_splits(self) -> int:
        return len(self.result_distributions)

    def result_distribution(self, index: int) -> np.ndarray:
        return self.result_distributions[index].copy()

    def is_null_split(self) -> bool:
        return self.conditional_test is None

    def __lt__(self, other: 'FeatureSplit') -> bool:
        return self.merit < other.merit

    def __repr__(self) -> str:
        test = self.conditional_test.description() if self.conditional_test is not None else "no split"
        return f"FeatureSplit(test={test}, merit={self.merit:.6f}, branches={self.num_splits()})"


def best_split(candidates: Sequence[FeatureSplit]) -> Optional[FeatureSplit]:
    """
    Pick the highest-merit candidate

    Args:
        candidates: Suggestions returned by a learning node

    Returns:
        Best candidate or None when the list is empty
    """
    if not candidates:
        return None
    return max(candidates, key=lambda s: s.merit)
