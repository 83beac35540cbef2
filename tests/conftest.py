# tests/conftest.py
import logging
from types import SimpleNamespace

import numpy as np
import pytest

from streams.example import Example, FeatureTypeArray, NominalFeatureType, NumericFeatureType
from trees.hoeffding_tree import HoeffdingTreeModel


@pytest.fixture
def feature_types() -> FeatureTypeArray:
    """One numeric feature 'x' and one nominal feature 'color' over a/b/c"""
    return FeatureTypeArray(
        [NumericFeatureType(), NominalFeatureType(3, ["a", "b", "c"])],
        ["x", "color"],
    )


@pytest.fixture
def numeric_types() -> FeatureTypeArray:
    return FeatureTypeArray([NumericFeatureType()], ["x"])


@pytest.fixture
def make_example():
    """Build an Example from raw feature values"""
    def _make(*features, label=0, weight=1.0):
        return Example(np.array(features, dtype=float), label, weight)
    return _make


@pytest.fixture
def settings():
    """Stand-in for the driver configuration nodes read from"""
    return SimpleNamespace(binary_only=False, pre_prune=False, nb_threshold=0.0)


@pytest.fixture
def model(feature_types) -> HoeffdingTreeModel:
    return HoeffdingTreeModel(2, feature_types, leaf_prediction="mc")


@pytest.fixture
def numeric_model(numeric_types) -> HoeffdingTreeModel:
    return HoeffdingTreeModel(2, numeric_types, leaf_prediction="mc")


@pytest.fixture
def separable_batch(make_example):
    """Two classes separated on x: class 0 near 0, class 1 near 1"""
    return [
        make_example(0.0, label=0),
        make_example(0.1, label=0),
        make_example(1.0, label=1),
        make_example(1.1, label=1),
    ]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
