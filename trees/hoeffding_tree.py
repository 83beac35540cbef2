#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Hoeffding Tree Module for StreamTree
Drives the node hierarchy: routes examples, grafts leaves and splits,
and folds partial copies learned on micro-batches back into one tree
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed

from streams.example import Example, FeatureTypeArray
from trees.feature_split import FeatureSplit
from trees.node import (ActiveLearningNode, FoundNode, InactiveLearningNode, LearningNode,
                        LearningNodeNB, LearningNodeNBAdaptive, Node, SplitNode)
from trees.split_criterion import SplitCriterion, create_split_criterion

logger = logging.getLogger(__name__)


class LeafPrediction(Enum):
    """Enumeration of leaf voting strategies"""
    MAJORITY_CLASS = "mc"
    NAIVE_BAYES = "nb"
    NAIVE_BAYES_ADAPTIVE = "nba"


LEAF_CLASSES = {
    LeafPrediction.MAJORITY_CLASS: ActiveLearningNode,
    LeafPrediction.NAIVE_BAYES: LearningNodeNB,
    LeafPrediction.NAIVE_BAYES_ADAPTIVE: LearningNodeNBAdaptive,
}


class HoeffdingTreeModel:
    """
    Streaming decision tree over a fixed number of classes and features

    The model owns the canonical tree. Micro-batches can be learned directly
    (learn_batch) or on independent snapshots in parallel that are folded back
    sequentially (learn_batches_parallel). Deciding when and how to split a
    leaf is left to the caller, which installs the chosen split with
    apply_split.
    """

    def __init__(self, num_classes: int, feature_types: FeatureTypeArray,
                 leaf_prediction: Union[str, LeafPrediction] = LeafPrediction.NAIVE_BAYES_ADAPTIVE,
                 nb_threshold: float = 0.0,
                 binary_only: bool = False,
                 pre_prune: bool = False,
                 split_criterion: Union[str, SplitCriterion] = "info_gain",
                 numeric_bins: Optional[int] = None):
        """
        Initialize the model with a single empty leaf

        Args:
            num_classes: Length of every class distribution in the tree
            feature_types: Descriptors of the example features
            leaf_prediction: 'mc', 'nb' or 'nba'
            nb_threshold: Weight a naive Bayes leaf needs before voting with naive Bayes
            binary_only: Only propose two-way splits
            pre_prune: Add a "no split" candidate to split suggestions
            split_criterion: Criterion name or instance
            numeric_bins: Split point candidates evaluated per numeric feature
        """
        if num_classes < 1:
            raise ValueError(f"Number of classes must be positive, got {num_classes}")

        self.num_classes = num_classes
        self.feature_types = feature_types
        self.leaf_prediction = LeafPrediction(leaf_prediction)
        self.nb_threshold = float(nb_threshold)
        self.binary_only = bool(binary_only)
        self.pre_prune = bool(pre_prune)
        if isinstance(split_criterion, SplitCriterion):
            self.split_criterion = split_criterion
        else:
            self.split_criterion = create_split_criterion(split_criterion)
        self.numeric_bins = numeric_bins

        self.root: Node = self.new_learning_node()
        self.unrouted_weight = 0.0

    @classmethod
    def from_config(cls, config: Dict[str, Any], num_classes: int,
                    feature_types: FeatureTypeArray) -> 'HoeffdingTreeModel':
        """
        Build a model from the 'hoeffding_tree' configuration section

        Args:
            config: Full application configuration
            num_classes: Number of classes of the stream
            feature_types: Feature descriptors of the stream

        Returns:
            New model
        """
        tree_config = config.get('hoeffding_tree', {})
        return cls(
            num_classes,
            feature_types,
            leaf_prediction=tree_config.get('leaf_prediction', 'nba'),
            nb_threshold=tree_config.get('nb_threshold', 0.0),
            binary_only=tree_config.get('binary_only', False),
            pre_prune=tree_config.get('pre_prune', False),
            split_criterion=tree_config.get('split_criterion', 'info_gain'),
            numeric_bins=tree_config.get('numeric_bins'),
        )

    def _empty_like(self) -> 'HoeffdingTreeModel':
        return HoeffdingTreeModel(
            self.num_classes, self.feature_types, self.leaf_prediction, self.nb_threshold,
            self.binary_only, self.pre_prune, self.split_criterion, self.numeric_bins)

    def new_learning_node(self, class_distribution: Optional[Sequence[float]] = None) -> ActiveLearningNode:
        if class_distribution is None:
            class_distribution = np.zeros(self.num_classes)
        leaf_class = LEAF_CLASSES[self.leaf_prediction]
        return leaf_class(class_distribution, self.feature_types, self.numeric_bins)

    def filter_to_leaf(self, example: Example) -> FoundNode:
        return self.root.filter_to_leaf(example, None, -1)

    def learn(self, example: Example, allow_graft: bool = True) -> bool:
        """
        Route an example and learn it at its leaf

        Args:
            example: Labeled record
            allow_graft: Create a leaf when the example reaches an empty slot

        Returns:
            False if the example reached an empty slot and grafting was not allowed
        """
        found = self.filter_to_leaf(example)
        node = found.node
        if node is None:
            if not allow_graft:
                return False
            node = self.new_learning_node()
            found.parent.set_child(found.index, node)

        if isinstance(node, LearningNode):
            node.learn(self, example)
        else:
            self.unrouted_weight += example.weight
            logger.debug(f"Example could not be routed below {node!r}, not learned")
        return True

    def _learn_all(self, examples: Sequence[Example], allow_graft: bool) -> List[Example]:
        return [example for example in examples if not self.learn(example, allow_graft)]

    def learn_batch(self, examples: Sequence[Example]) -> None:
        """Learn a micro-batch in order and confirm it"""
        self._learn_all(examples, allow_graft=True)
        self.confirm()

    def confirm(self) -> None:
        """Fold the block-local statistics of every node into its confirmed ones"""
        self.root.confirm()

    def learn_batches_parallel(self, batches: Sequence[Sequence[Example]], n_jobs: int = -2,
                               backend: str = 'threading') -> int:
        """
        Learn several micro-batches on independent snapshots, then fold them in

        Each batch is learned on its own snapshot of the tree. Snapshots are
        merged into this model one at a time, in batch order, with
        try_split=False. Examples that reached an empty slot on a snapshot are
        learned on this model afterwards and confirmed. Workers return their
        snapshot, so process-based backends fold the learned copies too.

        Args:
            batches: Micro-batches in stream order
            n_jobs: joblib worker count (-2 = all cores but one)
            backend: joblib backend

        Returns:
            Number of deferred examples learned after the fold
        """
        batches = [batch for batch in batches if len(batch) > 0]
        if not batches:
            return 0

        def learn_partial(partial: 'HoeffdingTreeModel',
                          batch: Sequence[Example]) -> Tuple['HoeffdingTreeModel', List[Example]]:
            return partial, partial._learn_all(batch, allow_graft=False)

        results = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(learn_partial)(self.snapshot(), batch) for batch in batches
        )

        deferred = []
        for partial, partial_deferred in results:
            self.merge(partial, try_split=False)
            deferred.extend(partial_deferred)

        for example in deferred:
            self.learn(example)
        self.confirm()

        logger.info(f"Folded {len(results)} partial models "
                    f"({sum(len(b) for b in batches)} examples, {len(deferred)} deferred)")
        return len(deferred)

    def snapshot(self) -> 'HoeffdingTreeModel':
        """Partial copy of the tree for one micro-batch worker"""
        copy = self._empty_like()
        copy.root = self.root.snapshot()
        return copy

    def merge(self, other: 'HoeffdingTreeModel', try_split: bool) -> 'HoeffdingTreeModel':
        self.root = self.root.merge(other.root, try_split)
        self.unrouted_weight += other.unrouted_weight
        return self

    def class_votes(self, example: Example) -> np.ndarray:
        found = self.filter_to_leaf(example)
        # An empty slot is answered by the split node that owns it
        node = found.node if found.node is not None else found.parent
        return node.class_votes(self, example)

    def predict(self, example: Example) -> int:
        return int(np.argmax(self.class_votes(example)))

    def predict_batch(self, examples: Sequence[Example]) -> np.ndarray:
        return np.array([self.predict(example) for example in examples], dtype=int)

    def split_suggestions(self, found: FoundNode) -> List[FeatureSplit]:
        if not isinstance(found.node, ActiveLearningNode):
            return []
        return found.node.get_best_split_suggestions(self.split_criterion, self)

    def _replace(self, found: FoundNode, node: Node) -> None:
        if found.parent is None:
            self.root = node
            node.set_depth(0)
        else:
            found.parent.set_child(found.index, node)

    def apply_split(self, found: FoundNode, feature_split: FeatureSplit) -> SplitNode:
        """
        Replace a leaf with a split node built from a chosen candidate

        The new subtree is assembled off the tree and published with a single
        slot replacement.

        Args:
            found: Location of the leaf, as returned by a descent
            feature_split: Candidate with a conditional test

        Returns:
            The installed split node
        """
        if not isinstance(found.node, LearningNode):
            raise ValueError(f"Only leaves can be split, got {found.node!r}")
        if feature_split.conditional_test is None:
            raise ValueError("Cannot apply the 'no split' candidate")

        split = SplitNode(found.node.merged_distribution(), feature_split.conditional_test)
        for i in range(feature_split.num_splits()):
            split.set_child(i, self.new_learning_node(feature_split.result_distribution(i)))

        self._replace(found, split)
        logger.info(f"Split {found.node!r} on {feature_split.conditional_test!r} "
                    f"into {feature_split.num_splits()} branches (merit {feature_split.merit:.4f})")
        return split

    def deactivate_leaf(self, found: FoundNode) -> InactiveLearningNode:
        if not isinstance(found.node, ActiveLearningNode):
            raise ValueError(f"Only active leaves can be deactivated, got {found.node!r}")
        node = found.node.deactivate()
        self._replace(found, node)
        return node

    def activate_leaf(self, found: FoundNode) -> ActiveLearningNode:
        if not isinstance(found.node, InactiveLearningNode):
            raise ValueError(f"Only inactive leaves can be activated, got {found.node!r}")
        node = found.node.activate(self.feature_types, LEAF_CLASSES[self.leaf_prediction], self.numeric_bins)
        self._replace(found, node)
        return node

    def iter_nodes(self) -> Iterator[Tuple[Node, Optional[SplitNode], int]]:
        """Depth-first walk yielding (node, parent, index) for every present node"""
        stack: List[Tuple[Node, Optional[SplitNode], int]] = [(self.root, None, -1)]
        while stack:
            node, parent, index = stack.pop()
            yield node, parent, index
            if isinstance(node, SplitNode):
                for i in reversed(range(len(node.children))):
                    if node.children[i] is not None:
                        stack.append((node.children[i], node, i))

    def leaves(self) -> List[FoundNode]:
        return [FoundNode(node, parent, index) for node, parent, index in self.iter_nodes()
                if isinstance(node, LearningNode)]

    def num_nodes(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def num_leaves(self) -> int:
        return len(self.leaves())

    def tree_depth(self) -> int:
        return max(node.depth for node, _, _ in self.iter_nodes())

    def description(self) -> str:
        return self.root.description()

    def __repr__(self) -> str:
        return (f"HoeffdingTreeModel(classes={self.num_classes}, features={self.feature_types.num_features}, "
                f"leaf_prediction={self.leaf_prediction.value}, nodes={self.num_nodes()})")
