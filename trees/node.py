#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Node Module for StreamTree
Represents the nodes of an incrementally grown Hoeffding tree

Every node carries two class distributions of identical length: the
confirmed one (already merged) and the block-local one (observed in the
current micro-batch, not merged yet). Partial copies of a tree learn into
their block-local state and are folded back into the canonical tree with
merge(other, try_split).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np

from observers import feature_class_observer
from observers.naive_bayes import NaiveBayes
from streams.example import Example, FeatureTypeArray
from trees.conditional_test import ConditionalTest
from trees.errors import GraftIndexError, StructuralMismatchError
from trees.feature_split import FeatureSplit
from trees.split_criterion import SplitCriterion

logger = logging.getLogger(__name__)


def format_distribution(distribution: Sequence[float]) -> str:
    return "[" + ", ".join(f"{w:g}" for w in distribution) + "]"


class Node(ABC):
    """Base class of every tree node"""

    def __init__(self, class_distribution: Sequence[float]):
        """
        Initialize a node

        Args:
            class_distribution: Confirmed class weights, one per class (copied)
        """
        self.class_distribution = np.array(class_distribution, dtype=float)
        self.block_class_distribution = np.zeros(len(self.class_distribution))
        self.depth = 0

    @property
    def num_classes(self) -> int:
        return len(self.class_distribution)

    @abstractmethod
    def filter_to_leaf(self, example: Example, parent: Optional['SplitNode'], index: int) -> 'FoundNode':
        """
        Descend to the node responsible for an example

        Args:
            example: Record to route
            parent: Split node this node hangs from (None for the root)
            index: Slot of this node within parent

        Returns:
            FoundNode describing where the example ended up
        """
        pass

    def class_votes(self, model: Any, example: Example) -> np.ndarray:
        return self.class_distribution.copy()

    def is_leaf(self) -> bool:
        return True

    def num_children(self) -> int:
        return 0

    def set_depth(self, depth: int) -> None:
        self.depth = depth

    @abstractmethod
    def merge(self, other: 'Node', try_split: bool) -> 'Node':
        """
        Fold another node's statistics into this one

        Args:
            other: Node at the same position in another copy of the tree
            try_split: False folds other's block-local statistics,
                True adds other's confirmed statistics

        Returns:
            This node, updated in place
        """
        pass

    @abstractmethod
    def snapshot(self) -> 'Node':
        """
        Self-contained copy for a micro-batch worker: confirmed and block
        statistics are combined into the copy's confirmed distribution and
        all block-local state starts empty.
        """
        pass

    def merged_distribution(self) -> np.ndarray:
        return self.class_distribution + self.block_class_distribution

    def confirm(self) -> None:
        """Move this node's block-local statistics into its confirmed ones"""
        self.class_distribution += self.block_class_distribution
        self.block_class_distribution[:] = 0.0

    def description(self) -> str:
        return "  " * self.depth + "Leaf weight = " + format_distribution(self.class_distribution) + "\n"

    def _check_class_count(self, other: 'Node') -> None:
        if other.num_classes != self.num_classes:
            message = (f"Cannot merge a node with {other.num_classes} classes "
                       f"into {self!r} with {self.num_classes} classes")
            logger.error(message)
            raise StructuralMismatchError(message)


@dataclass(frozen=True)
class FoundNode:
    """
    Result of a descent: the node reached (None when the slot is not created
    yet), the split node it hangs from and its slot index there.
    """
    node: Optional[Node]
    parent: Optional['SplitNode']
    index: int

    def is_graft_signal(self) -> bool:
        return self.node is None


class SplitNode(Node):
    """Branch node routing examples through a conditional test"""

    def __init__(self, class_distribution: Sequence[float], conditional_test: ConditionalTest):
        super().__init__(class_distribution)
        self.conditional_test = conditional_test
        self.children: List[Optional[Node]] = []

    def child_index(self, example: Example) -> int:
        return self.conditional_test.branch(example)

    def filter_to_leaf(self, example, parent, index) -> FoundNode:
        c_index = self.child_index(example)
        if c_index < 0 or c_index > len(self.children):
            # Unroutable: the example stays at this branch
            return FoundNode(self, parent, index)
        if c_index < len(self.children) and self.children[c_index] is not None:
            return self.children[c_index].filter_to_leaf(example, self, c_index)
        return FoundNode(None, self, c_index)

    def set_child(self, index: int, node: Node) -> None:
        """
        Publish a node at a child slot

        Args:
            index: Existing slot to overwrite, or len(children) to append
            node: Node to graft

        Raises:
            GraftIndexError: If index is negative or beyond the frontier
        """
        if node is None:
            raise ValueError("Cannot graft an absent node")
        if index < 0 or index > len(self.children):
            message = f"Cannot graft at index {index} of {self!r} with {len(self.children)} children"
            logger.error(message)
            raise GraftIndexError(message)

        if index < len(self.children):
            self.children[index] = node
        else:
            self.children.append(node)
        node.set_depth(self.depth + 1)
        logger.debug(f"Grafted {node!r} at index {index} of {self!r}")

    def is_leaf(self) -> bool:
        return False

    def num_children(self) -> int:
        return sum(1 for child in self.children if child is not None)

    def set_depth(self, depth: int) -> None:
        self.depth = depth
        for child in self.children:
            if child is not None:
                child.set_depth(depth + 1)

    def merge(self, other, try_split) -> Node:
        if not isinstance(other, SplitNode):
            message = (f"Cannot merge {other!r} into {self!r}: topologies diverged "
                       f"({float(other.block_class_distribution.sum()):g} block weight not folded)")
            logger.error(message)
            raise StructuralMismatchError(message)

        if len(other.children) != len(self.children):
            message = (f"Cannot merge split nodes with {len(other.children)} "
                       f"and {len(self.children)} children at depth {self.depth}")
            logger.error(message)
            raise StructuralMismatchError(message)

        for i, (child, other_child) in enumerate(zip(self.children, other.children)):
            if child is None and other_child is None:
                continue
            if child is None or other_child is None:
                message = f"Child slot {i} of {self!r} is present in only one of the merged trees"
                logger.error(message)
                raise StructuralMismatchError(message)
            self.children[i] = child.merge(other_child, try_split)
        return self

    def confirm(self) -> None:
        super().confirm()
        for child in self.children:
            if child is not None:
                child.confirm()

    def snapshot(self) -> 'SplitNode':
        copy = SplitNode(self.merged_distribution(), self.conditional_test)
        copy.depth = self.depth
        copy.children = [child.snapshot() if child is not None else None for child in self.children]
        return copy

    def description(self) -> str:
        indent = "  " * self.depth
        labels = self.conditional_test.description()
        lines = [indent + "\n"]
        for i, child in enumerate(self.children):
            label = labels[i] if i < len(labels) else f"branch {i}"
            lines.append(f"{indent} if {label}\n")
            if child is None:
                lines.append(indent + "  <empty>\n")
            else:
                lines.append(child.description())
        return "".join(lines)

    def __repr__(self) -> str:
        return f"level[{self.depth}] SplitNode"


class LearningNode(Node):
    """Leaf that can absorb examples"""

    @abstractmethod
    def learn(self, model: Any, example: Example) -> None:
        pass

    @abstractmethod
    def is_active(self) -> bool:
        pass

    def filter_to_leaf(self, example, parent, index) -> FoundNode:
        return FoundNode(self, parent, index)


class ActiveLearningNode(LearningNode):
    """Majority-class leaf keeping per-feature observers, eligible for splitting"""

    def __init__(self, class_distribution: Sequence[float], feature_types: FeatureTypeArray,
                 numeric_bins: Optional[int] = None):
        super().__init__(class_distribution)
        self.feature_types = feature_types
        self.numeric_bins = numeric_bins
        self.addon_weight = 0.0
        self.feature_observers: Optional[List[feature_class_observer.FeatureClassObserver]] = None

    def init_observers(self) -> None:
        """Build one observer per feature on first use"""
        if self.feature_observers is not None:
            return
        self.feature_observers = [
            feature_class_observer.create_feature_class_observer(
                feature_type, self.num_classes, i, feature_type.get_range(),
                self.numeric_bins or feature_class_observer.DEFAULT_NUMERIC_BINS)
            for i, feature_type in enumerate(self.feature_types)
        ]

    def _absorb(self, example: Example) -> None:
        self.init_observers()
        label = example.label_at(0)
        self.block_class_distribution[label] += example.weight
        for i, observer in enumerate(self.feature_observers):
            observer.observe_class(label, example.feature_at(i), example.weight)

    def learn(self, model, example) -> None:
        self._absorb(example)

    def is_active(self) -> bool:
        return True

    def is_pure(self) -> bool:
        return (np.count_nonzero(self.class_distribution) <= 1 and
                np.count_nonzero(self.block_class_distribution) <= 1)

    def weight(self) -> float:
        return float(self.class_distribution.sum() + self.block_class_distribution.sum())

    def block_weight(self) -> float:
        return float(self.block_class_distribution.sum())

    def add_on_weight(self) -> float:
        block_weight = self.block_weight()
        if block_weight != 0:
            return block_weight
        return self.addon_weight

    def _check_variant(self, other: Node) -> None:
        if type(other) is not type(self):
            message = f"Cannot merge {other!r} into {self!r}: leaf variants differ"
            logger.error(message)
            raise StructuralMismatchError(message)
        self._check_class_count(other)

    def _merge_statistics(self, other: 'ActiveLearningNode', try_split: bool) -> None:
        if not try_split:
            self.addon_weight += float(other.block_class_distribution.sum())
            self.class_distribution += other.block_class_distribution
        else:
            self.addon_weight += other.addon_weight
            self.class_distribution += other.class_distribution

        if other.feature_observers is None:
            return
        self.init_observers()
        if len(other.feature_observers) != len(self.feature_observers):
            message = (f"Cannot merge {len(other.feature_observers)} feature observers "
                       f"into {len(self.feature_observers)}")
            logger.error(message)
            raise StructuralMismatchError(message)
        for i, other_observer in enumerate(other.feature_observers):
            self.feature_observers[i] = self.feature_observers[i].merge(other_observer, try_split)

    def merge(self, other, try_split) -> Node:
        self._check_variant(other)
        self._merge_statistics(other, try_split)
        return self

    def confirm(self) -> None:
        self.addon_weight += self.block_weight()
        super().confirm()

    def get_best_split_suggestions(self, criterion: SplitCriterion, model: Any) -> List[FeatureSplit]:
        """
        Best candidate split of every feature

        Args:
            criterion: Merit function applied by the observers
            model: Supplies binary_only and pre_prune

        Returns:
            Unordered candidates, plus a "no split" baseline when pre-pruning
        """
        self.init_observers()
        suggestions = []
        for i, observer in enumerate(self.feature_observers):
            suggestion = observer.best_split(criterion, self.class_distribution, i, model.binary_only)
            if suggestion is not None:
                suggestions.append(suggestion)

        if model.pre_prune:
            baseline = criterion.merit(self.class_distribution, [self.class_distribution])
            suggestions.append(FeatureSplit(None, baseline, []))
        return suggestions

    def deactivate(self) -> 'InactiveLearningNode':
        node = InactiveLearningNode(self.merged_distribution())
        node.depth = self.depth
        return node

    def snapshot(self) -> 'ActiveLearningNode':
        copy = type(self)(self.merged_distribution(), self.feature_types, self.numeric_bins)
        copy.depth = self.depth
        return copy

    def __repr__(self) -> str:
        return f"level[{self.depth}] {type(self).__name__}:{self.weight()}"


class InactiveLearningNode(LearningNode):
    """Leaf frozen to its class distribution"""

    def learn(self, model, example) -> None:
        pass

    def is_active(self) -> bool:
        return False

    def merge(self, other, try_split) -> Node:
        return self

    def activate(self, feature_types: FeatureTypeArray, leaf_class: type = ActiveLearningNode,
                 numeric_bins: Optional[int] = None) -> ActiveLearningNode:
        node = leaf_class(self.merged_distribution(), feature_types, numeric_bins)
        node.depth = self.depth
        return node

    def snapshot(self) -> 'InactiveLearningNode':
        copy = InactiveLearningNode(self.merged_distribution())
        copy.depth = self.depth
        return copy

    def __repr__(self) -> str:
        return f"level[{self.depth}] InactiveLearningNode"


class LearningNodeNB(ActiveLearningNode):
    """Active leaf voting with naive Bayes once it has seen enough weight"""

    def class_votes(self, model, example) -> np.ndarray:
        if self.weight() > model.nb_threshold and self.feature_observers is not None:
            return NaiveBayes.predict(example, self.class_distribution, self.feature_observers)
        return super().class_votes(model, example)


class LearningNodeNBAdaptive(ActiveLearningNode):
    """
    Active leaf that tracks how often majority-class and naive Bayes votes
    would have been right, and votes with whichever has the larger confirmed
    correct weight.
    """

    def __init__(self, class_distribution: Sequence[float], feature_types: FeatureTypeArray,
                 numeric_bins: Optional[int] = None):
        super().__init__(class_distribution, feature_types, numeric_bins)
        self.mc_correct_weight = 0.0
        self.nb_correct_weight = 0.0
        self.mc_block_correct_weight = 0.0
        self.nb_block_correct_weight = 0.0

    def learn(self, model, example) -> None:
        self._absorb(example)
        label = example.label_at(0)
        if int(np.argmax(self.class_distribution)) == label:
            self.mc_block_correct_weight += example.weight
        nb_votes = NaiveBayes.predict(example, self.class_distribution, self.feature_observers)
        if int(np.argmax(nb_votes)) == label:
            self.nb_block_correct_weight += example.weight

    def _merge_statistics(self, other, try_split) -> None:
        super()._merge_statistics(other, try_split)
        if not try_split:
            self.mc_correct_weight += other.mc_block_correct_weight
            self.nb_correct_weight += other.nb_block_correct_weight
        else:
            self.mc_correct_weight += other.mc_correct_weight
            self.nb_correct_weight += other.nb_correct_weight

    def confirm(self) -> None:
        super().confirm()
        self.mc_correct_weight += self.mc_block_correct_weight
        self.nb_correct_weight += self.nb_block_correct_weight
        self.mc_block_correct_weight = self.nb_block_correct_weight = 0.0

    def class_votes(self, model, example) -> np.ndarray:
        if self.mc_correct_weight > self.nb_correct_weight:
            return super().class_votes(model, example)
        return NaiveBayes.predict(example, self.class_distribution, self.feature_observers)

    def snapshot(self) -> 'LearningNodeNBAdaptive':
        copy = super().snapshot()
        copy.mc_correct_weight = self.mc_correct_weight + self.mc_block_correct_weight
        copy.nb_correct_weight = self.nb_correct_weight + self.nb_block_correct_weight
        return copy
