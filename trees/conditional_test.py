#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Conditional Test Module for StreamTree
Routing tests owned by split nodes
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional

from streams.example import Example

logger = logging.getLogger(__name__)


class ConditionalTest(ABC):
    """Maps an example to a branch index; negative means it cannot be routed"""

    def __init__(self, feature_index: int, feature_name: Optional[str] = None):
        self.feature_index = feature_index
        self.feature_name = feature_name or f"feature[{feature_index}]"

    @abstractmethod
    def branch(self, example: Example) -> int:
        pass

    @abstractmethod
    def max_branches(self) -> int:
        pass

    @abstractmethod
    def description(self) -> List[str]:
        """One human-readable label per branch outcome"""
        pass

    def result_known(self, example: Example) -> bool:
        return self.branch(example) >= 0

    def _value(self, example: Example) -> float:
        if self.feature_index >= example.num_features:
            return math.nan
        return example.feature_at(self.feature_index)


class NumericBinaryTest(ConditionalTest):
    """value <= threshold goes left (0), otherwise right (1)"""

    def __init__(self, feature_index: int, value: float, feature_name: Optional[str] = None):
        super().__init__(feature_index, feature_name)
        self.value = float(value)

    def branch(self, example: Example) -> int:
        x = self._value(example)
        if math.isnan(x):
            return -1
        return 0 if x <= self.value else 1

    def max_branches(self) -> int:
        return 2

    def description(self) -> List[str]:
        return [f"{self.feature_name} <= {self.value:.4f}",
                f"{self.feature_name} > {self.value:.4f}"]

    def __repr__(self) -> str:
        return f"NumericBinaryTest({self.feature_name} <= {self.value})"


class NominalBinaryTest(ConditionalTest):
    """value == v goes left (0), any other observed value right (1)"""

    def __init__(self, feature_index: int, value: int, feature_name: Optional[str] = None,
                 value_label: Optional[str] = None):
        super().__init__(feature_index, feature_name)
        self.value = int(value)
        self.value_label = value_label if value_label is not None else str(self.value)

    def branch(self, example: Example) -> int:
        x = self._value(example)
        if math.isnan(x):
            return -1
        return 0 if int(x) == self.value else 1

    def max_branches(self) -> int:
        return 2

    def description(self) -> List[str]:
        return [f"{self.feature_name} == {self.value_label}",
                f"{self.feature_name} != {self.value_label}"]

    def __repr__(self) -> str:
        return f"NominalBinaryTest({self.feature_name} == {self.value_label})"


class NominalMultiwayTest(ConditionalTest):
    """One branch per nominal value"""

    def __init__(self, feature_index: int, num_values: int, feature_name: Optional[str] = None,
                 value_labels: Optional[List[str]] = None):
        super().__init__(feature_index, feature_name)
        self.num_values = num_values
        self.value_labels = list(value_labels) if value_labels is not None else [str(v) for v in range(num_values)]

    def branch(self, example: Example) -> int:
        x = self._value(example)
        if math.isnan(x) or x < 0 or x >= self.num_values:
            return -1
        return int(x)

    def max_branches(self) -> int:
        return self.num_values

    def description(self) -> List[str]:
        return [f"{self.feature_name} == {label}" for label in self.value_labels]

    def __repr__(self) -> str:
        return f"NominalMultiwayTest({self.feature_name}, values={self.num_values})"
