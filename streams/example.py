#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Example Module for StreamTree
Labeled records and the feature type descriptors that travel with them
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Example:
    """A single weighted, labeled record"""

    def __init__(self, features: Union[Sequence[float], np.ndarray],
                 labels: Union[float, Sequence[float], np.ndarray],
                 weight: float = 1.0):
        """
        Initialize an example

        Args:
            features: Feature values, NaN marks a missing value
            labels: Class index (or a sequence of label values, the first one is the class)
            weight: Non-negative record weight
        """
        if weight < 0 or math.isnan(weight):
            raise ValueError(f"Example weight must be non-negative, got {weight}")

        self.features = np.asarray(features, dtype=float)
        self.labels = np.atleast_1d(np.asarray(labels, dtype=float))
        self.weight = float(weight)

    def label_at(self, index: int) -> int:
        return int(self.labels[index])

    def feature_at(self, index: int) -> float:
        return float(self.features[index])

    @property
    def num_features(self) -> int:
        return len(self.features)

    def __repr__(self) -> str:
        return f"Example(label={self.label_at(0)}, weight={self.weight}, features={self.features.tolist()})"


class FeatureType:
    """Base class for feature type descriptors"""

    def get_range(self) -> int:
        """
        Number of distinct values the feature can take

        Returns:
            Value count for nominal features, 0 for numeric ones
        """
        return 0

    def is_nominal(self) -> bool:
        return False


class NumericFeatureType(FeatureType):
    """Continuous feature"""

    def __repr__(self) -> str:
        return "NumericFeatureType()"


class NominalFeatureType(FeatureType):
    """Discrete feature whose values are encoded as 0..num_values-1"""

    def __init__(self, num_values: int, values: Optional[List[str]] = None):
        if num_values < 1:
            raise ValueError(f"Nominal feature needs at least one value, got {num_values}")
        self.num_values = num_values
        self.values = list(values) if values is not None else [str(v) for v in range(num_values)]

    def get_range(self) -> int:
        return self.num_values

    def is_nominal(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"NominalFeatureType(num_values={self.num_values})"


class FeatureTypeArray:
    """Ordered feature type descriptors, one per feature"""

    def __init__(self, feature_types: Sequence[FeatureType], names: Optional[Sequence[str]] = None):
        self.feature_types: Tuple[FeatureType, ...] = tuple(feature_types)
        if names is None:
            names = [f"f{i}" for i in range(len(self.feature_types))]
        if len(names) != len(self.feature_types):
            raise ValueError(f"Got {len(names)} feature names for {len(self.feature_types)} feature types")
        self.names: Tuple[str, ...] = tuple(names)

    @property
    def num_features(self) -> int:
        return len(self.feature_types)

    def __getitem__(self, index: int) -> FeatureType:
        return self.feature_types[index]

    def __iter__(self):
        return iter(self.feature_types)

    def __len__(self) -> int:
        return len(self.feature_types)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'FeatureTypeArray':
        """
        Infer feature types from DataFrame dtypes

        Numeric columns become numeric features, every other column (object,
        category, bool) becomes a nominal feature over its observed values.

        Args:
            df: Feature columns only

        Returns:
            FeatureTypeArray aligned with the DataFrame columns
        """
        feature_types = []
        for column in df.columns:
            series = df[column]
            if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
                feature_types.append(NumericFeatureType())
            else:
                if isinstance(series.dtype, pd.CategoricalDtype):
                    values = [str(v) for v in series.cat.categories]
                else:
                    values = sorted(str(v) for v in series.dropna().unique())
                if not values:
                    logger.warning(f"Column '{column}' has no observed values, treating it as single-valued")
                    values = ["<missing>"]
                feature_types.append(NominalFeatureType(len(values), values))

        logger.debug(f"Inferred feature types: {feature_types}")
        return cls(feature_types, [str(c) for c in df.columns])

    def __repr__(self) -> str:
        return f"FeatureTypeArray({list(self.feature_types)})"
