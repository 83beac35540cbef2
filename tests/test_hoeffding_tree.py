# tests/test_hoeffding_tree.py
import math

import numpy as np
import pytest

from trees.conditional_test import NumericBinaryTest
from trees.feature_split import FeatureSplit, best_split
from trees.hoeffding_tree import HoeffdingTreeModel, LeafPrediction
from trees.node import (ActiveLearningNode, InactiveLearningNode, LearningNodeNB,
                        LearningNodeNBAdaptive, SplitNode)
from trees.split_criterion import GiniSplitCriterion, InfoGainSplitCriterion


def _split_root(model, threshold=0.5):
    model.root = SplitNode(np.zeros(model.num_classes), NumericBinaryTest(0, threshold))
    return model.root


def _node_depths_match_paths(model):
    depth_of = {id(model.root): 0}
    for node, parent, _ in model.iter_nodes():
        if parent is not None:
            depth_of[id(node)] = depth_of[id(parent)] + 1
        if node.depth != depth_of[id(node)]:
            return False
    return True


# =============================================================================
# Construction
# =============================================================================
def test_default_model_uses_adaptive_leaves(feature_types):
    model = HoeffdingTreeModel(3, feature_types)

    assert model.leaf_prediction is LeafPrediction.NAIVE_BAYES_ADAPTIVE
    assert isinstance(model.root, LearningNodeNBAdaptive)
    assert model.root.num_classes == 3
    assert isinstance(model.split_criterion, InfoGainSplitCriterion)


def test_from_config(feature_types):
    config = {
        'hoeffding_tree': {
            'leaf_prediction': 'nb',
            'nb_threshold': 3.0,
            'binary_only': True,
            'pre_prune': True,
            'split_criterion': 'gini',
            'numeric_bins': 5
        }
    }

    model = HoeffdingTreeModel.from_config(config, 2, feature_types)

    assert type(model.root) is LearningNodeNB
    assert model.nb_threshold == 3.0
    assert model.binary_only and model.pre_prune
    assert isinstance(model.split_criterion, GiniSplitCriterion)

    model.root.init_observers()
    assert model.root.feature_observers[0].num_bins == 5


def test_invalid_settings_raise(feature_types):
    with pytest.raises(ValueError):
        HoeffdingTreeModel(2, feature_types, leaf_prediction="forest")
    with pytest.raises(ValueError):
        HoeffdingTreeModel(2, feature_types, split_criterion="chi2")
    with pytest.raises(ValueError):
        HoeffdingTreeModel(0, feature_types)


# =============================================================================
# Learning and routing
# =============================================================================
def test_learn_grafts_missing_leaves(numeric_model, make_example):
    split = _split_root(numeric_model)

    assert numeric_model.learn(make_example(0.2, label=0))
    assert numeric_model.learn(make_example(0.9, label=1, weight=2.0))

    assert len(split.children) == 2
    assert numeric_model.num_leaves() == 2
    assert numeric_model.tree_depth() == 1
    np.testing.assert_allclose(split.children[0].block_class_distribution, [1.0, 0.0])
    np.testing.assert_allclose(split.children[1].block_class_distribution, [0.0, 2.0])
    assert _node_depths_match_paths(numeric_model)


def test_learn_without_graft_defers(numeric_model, make_example):
    _split_root(numeric_model)

    assert not numeric_model.learn(make_example(0.2), allow_graft=False)
    assert not numeric_model.learn(make_example(0.3), allow_graft=False)

    assert numeric_model.num_leaves() == 0


def test_learn_batch_confirms_statistics(numeric_model, make_example):
    numeric_model.learn_batch([make_example(0.9, label=1)] * 5)

    root = numeric_model.root
    np.testing.assert_allclose(numeric_model.class_votes(make_example(0.9)), [0.0, 5.0])
    np.testing.assert_allclose(root.block_class_distribution, [0.0, 0.0])
    assert numeric_model.predict(make_example(0.9)) == 1
    assert root.addon_weight == pytest.approx(5.0)


def test_split_suggestions_after_learn_batch(numeric_model, separable_batch):
    numeric_model.learn_batch(separable_batch)

    suggestions = numeric_model.split_suggestions(numeric_model.leaves()[0])

    assert best_split(suggestions).merit == pytest.approx(1.0)


def test_confirm_adaptive_counters(numeric_types, make_example):
    model = HoeffdingTreeModel(2, numeric_types, leaf_prediction="nba")
    model.learn_batch([make_example(0.1, label=0)] * 2)

    root = model.root
    assert root.mc_correct_weight + root.nb_correct_weight > 0.0
    assert root.mc_block_correct_weight == root.nb_block_correct_weight == 0.0
    np.testing.assert_allclose(root.class_distribution, [2.0, 0.0])


def test_unroutable_examples_are_counted(numeric_model, make_example):
    split = _split_root(numeric_model)

    assert numeric_model.learn(make_example(math.nan, weight=2.5))

    assert numeric_model.unrouted_weight == pytest.approx(2.5)
    assert split.children == []


def test_class_votes_fall_back_to_split_node(numeric_model, make_example):
    split = _split_root(numeric_model)
    split.class_distribution[:] = [3.0, 1.0]

    np.testing.assert_allclose(numeric_model.class_votes(make_example(0.2)), [3.0, 1.0])
    np.testing.assert_allclose(numeric_model.class_votes(make_example(math.nan)), [3.0, 1.0])
    assert numeric_model.predict(make_example(0.2)) == 0


# =============================================================================
# Parallel micro-batches
# =============================================================================
def test_parallel_fold_conserves_weight(numeric_model, make_example):
    batches = [
        [make_example(0.1, label=0), make_example(0.2, label=0, weight=2.0), make_example(0.9, label=1)],
        [make_example(0.8, label=1, weight=0.5), make_example(0.3, label=0)],
        [make_example(0.7, label=1)],
    ]

    deferred = numeric_model.learn_batches_parallel(batches, n_jobs=2)

    root = numeric_model.root
    assert deferred == 0
    np.testing.assert_allclose(root.class_distribution, [4.0, 2.5])
    np.testing.assert_allclose(root.block_class_distribution, [0.0, 0.0])
    assert root.addon_weight == pytest.approx(6.5)
    assert root.feature_observers[0].estimators[0].weight_sum == pytest.approx(4.0)


def test_parallel_fold_matches_sequential_counts(numeric_types, make_example):
    batches = [[make_example(x / 10.0, label=int(x > 4)) for x in range(start, start + 4)]
               for start in range(0, 8, 4)]
    parallel = HoeffdingTreeModel(2, numeric_types, leaf_prediction="mc")
    sequential = HoeffdingTreeModel(2, numeric_types, leaf_prediction="mc")

    parallel.learn_batches_parallel(batches, n_jobs=2)
    for batch in batches:
        sequential.learn_batch(batch)

    np.testing.assert_allclose(parallel.root.class_distribution, [5.0, 3.0])
    np.testing.assert_allclose(sequential.root.class_distribution, [5.0, 3.0])
    assert parallel.root.addon_weight == sequential.root.addon_weight == pytest.approx(8.0)
    probes = [make_example(x / 10.0) for x in range(8)]
    np.testing.assert_array_equal(parallel.predict_batch(probes), sequential.predict_batch(probes))


def test_parallel_defers_examples_needing_a_graft(numeric_model, make_example):
    split = _split_root(numeric_model)

    deferred = numeric_model.learn_batches_parallel(
        [[make_example(0.2, label=0)], [make_example(0.3, label=1)]], n_jobs=2)

    assert deferred == 2
    assert split.num_children() == 1
    np.testing.assert_allclose(split.children[0].class_distribution, [1.0, 1.0])
    np.testing.assert_allclose(split.children[0].block_class_distribution, [0.0, 0.0])
    assert numeric_model.unrouted_weight == 0.0


def test_deferred_examples_count_in_later_rounds(numeric_model, make_example):
    split = _split_root(numeric_model)

    assert numeric_model.learn_batches_parallel([[make_example(0.2, label=1)] * 3], n_jobs=1) == 3
    assert numeric_model.predict(make_example(0.2)) == 1

    numeric_model.learn_batches_parallel([[make_example(0.2, label=1)] * 2], n_jobs=1)

    np.testing.assert_allclose(split.children[0].class_distribution, [0.0, 5.0])
    np.testing.assert_allclose(split.children[0].block_class_distribution, [0.0, 0.0])


def test_process_backend_folds_learned_partials(numeric_model, make_example):
    batches = [[make_example(0.1, label=0)] * 3, [make_example(0.9, label=1)] * 2]

    numeric_model.learn_batches_parallel(batches, n_jobs=2, backend="loky")

    np.testing.assert_allclose(numeric_model.root.class_distribution, [3.0, 2.0])
    assert numeric_model.root.weight() == pytest.approx(5.0)
    assert numeric_model.root.feature_observers[0].estimators[1].weight_sum == pytest.approx(2.0)


def test_outcome_past_frontier_stays_at_split(numeric_model, make_example):
    split = _split_root(numeric_model)

    numeric_model.learn(make_example(0.9, label=1))

    assert split.children == []
    assert numeric_model.unrouted_weight == pytest.approx(1.0)


def test_parallel_skips_empty_batches(numeric_model):
    assert numeric_model.learn_batches_parallel([[], []]) == 0
    assert numeric_model.root.weight() == 0.0


def test_snapshot_is_independent(numeric_model, make_example):
    numeric_model.learn(make_example(0.2, label=0))
    partial = numeric_model.snapshot()

    partial.learn(make_example(0.2, label=1))

    assert partial is not numeric_model
    assert partial.root is not numeric_model.root
    np.testing.assert_allclose(numeric_model.root.merged_distribution(), [1.0, 0.0])
    np.testing.assert_allclose(partial.root.merged_distribution(), [1.0, 1.0])


def test_merge_reconciled_models(numeric_types, make_example, separable_batch):
    a = HoeffdingTreeModel(2, numeric_types, leaf_prediction="mc")
    b = HoeffdingTreeModel(2, numeric_types, leaf_prediction="mc")
    a.learn_batches_parallel([separable_batch], n_jobs=1)
    b.learn_batches_parallel([separable_batch[:1]], n_jobs=1)

    a.merge(b, try_split=True)

    np.testing.assert_allclose(a.root.class_distribution, [3.0, 2.0])
    assert a.root.addon_weight == pytest.approx(5.0)


# =============================================================================
# Splitting
# =============================================================================
def test_split_suggestions_and_apply_split(numeric_model, make_example, separable_batch):
    numeric_model.learn_batches_parallel([separable_batch], n_jobs=1)
    found = numeric_model.leaves()[0]

    suggestions = numeric_model.split_suggestions(found)
    best = best_split(suggestions)

    assert best.merit == pytest.approx(1.0)
    assert 0.1 - 1e-9 <= best.conditional_test.value < 1.0

    split = numeric_model.apply_split(found, best)

    assert numeric_model.root is split
    assert split.num_children() == 2
    np.testing.assert_allclose(split.class_distribution, [2.0, 2.0])
    np.testing.assert_allclose(split.children[0].class_distribution, [2.0, 0.0])
    np.testing.assert_allclose(split.children[1].class_distribution, [0.0, 2.0])
    assert all(child.depth == 1 for child in split.children)
    assert numeric_model.predict(make_example(0.05)) == 0
    assert numeric_model.predict(make_example(1.05)) == 1
    np.testing.assert_array_equal(
        numeric_model.predict_batch([make_example(0.05), make_example(1.05)]), [0, 1])


def test_split_below_root_keeps_depths(numeric_model, make_example):
    split = _split_root(numeric_model)
    numeric_model.learn(make_example(0.2, label=0))
    numeric_model.learn(make_example(0.9, label=1))
    found = numeric_model.filter_to_leaf(make_example(0.2))

    feature_split = FeatureSplit(NumericBinaryTest(0, 0.25), 0.5, [[1.0, 0.0], [0.0, 0.0]])
    inner = numeric_model.apply_split(found, feature_split)

    assert split.children[0] is inner
    assert inner.depth == 1
    assert numeric_model.tree_depth() == 2
    assert numeric_model.num_nodes() == 5
    assert _node_depths_match_paths(numeric_model)


def test_apply_split_rejects_bad_input(numeric_model, make_example):
    found = numeric_model.filter_to_leaf(make_example(0.2))
    with pytest.raises(ValueError):
        numeric_model.apply_split(found, FeatureSplit(None, 0.0, []))

    _split_root(numeric_model)
    found = numeric_model.filter_to_leaf(make_example(math.nan))
    with pytest.raises(ValueError):
        numeric_model.apply_split(found, FeatureSplit(NumericBinaryTest(0, 0.1), 0.0, [[0, 0], [0, 0]]))


def test_split_suggestions_ignore_inactive_leaves(numeric_model):
    numeric_model.deactivate_leaf(numeric_model.leaves()[0])

    assert numeric_model.split_suggestions(numeric_model.leaves()[0]) == []


# =============================================================================
# Deactivation
# =============================================================================
def test_deactivate_and_activate(numeric_model, make_example, separable_batch):
    numeric_model.learn_batches_parallel([separable_batch], n_jobs=1)

    inactive = numeric_model.deactivate_leaf(numeric_model.leaves()[0])
    assert numeric_model.root is inactive
    assert isinstance(inactive, InactiveLearningNode)

    numeric_model.learn(make_example(0.5, label=1))
    numeric_model.learn_batches_parallel([separable_batch], n_jobs=1)
    np.testing.assert_allclose(inactive.class_distribution, [2.0, 2.0])

    active = numeric_model.activate_leaf(numeric_model.leaves()[0])
    assert type(active) is ActiveLearningNode
    assert numeric_model.root is active
    np.testing.assert_allclose(active.class_distribution, [2.0, 2.0])

    with pytest.raises(ValueError):
        numeric_model.activate_leaf(numeric_model.leaves()[0])


def test_deactivate_child_keeps_depth(numeric_model, make_example):
    split = _split_root(numeric_model)
    numeric_model.learn(make_example(0.2, label=0))

    inactive = numeric_model.deactivate_leaf(numeric_model.leaves()[0])

    assert split.children[0] is inactive
    assert inactive.depth == 1


# =============================================================================
# Introspection
# =============================================================================
def test_description_and_repr(numeric_model, make_example):
    split = _split_root(numeric_model)
    numeric_model.learn(make_example(0.2, label=0))

    assert "Leaf weight" in numeric_model.description()
    assert " if feature[0] <= 0.5000" in numeric_model.description()
    assert repr(numeric_model).startswith("HoeffdingTreeModel(classes=2, features=1")
    assert repr(split) == "level[0] SplitNode"
