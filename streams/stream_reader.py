#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Stream Reader Module for StreamTree
Turns tabular sources into finite micro-batches of Examples
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from streams.example import Example, FeatureTypeArray

logger = logging.getLogger(__name__)


class StreamReader(ABC):
    """Source of an ordered sequence of micro-batches"""

    @abstractmethod
    def batches(self) -> Iterator[List[Example]]:
        """Yield finite batches of examples, in stream order"""
        pass

    @property
    @abstractmethod
    def classes(self) -> List[Any]:
        pass

    @property
    @abstractmethod
    def feature_types(self) -> FeatureTypeArray:
        pass

    @property
    def num_classes(self) -> int:
        return len(self.classes)


class ExampleEncoder:
    """Encodes DataFrame rows into Examples with a fixed class and value coding"""

    def __init__(self, feature_types: FeatureTypeArray, classes: Sequence[Any]):
        self.feature_types = feature_types
        self.classes = list(classes)
        self._class_index = {c: i for i, c in enumerate(self.classes)}
        self._value_index: Dict[int, Dict[str, int]] = {}
        for i, feature_type in enumerate(feature_types):
            if feature_type.is_nominal():
                self._value_index[i] = {v: j for j, v in enumerate(feature_type.values)}

    def encode_features(self, features: pd.DataFrame) -> np.ndarray:
        """
        Encode feature columns into a float matrix

        Nominal values are replaced by their index; values outside the known
        coding become NaN (missing).

        Args:
            features: Feature columns in FeatureTypeArray order

        Returns:
            Array of shape (n_rows, n_features)
        """
        matrix = np.full((len(features), self.feature_types.num_features), np.nan)
        for i, column in enumerate(features.columns):
            if i in self._value_index:
                mapping = self._value_index[i]
                coded = features[column].map(lambda v: mapping.get(str(v), np.nan) if pd.notna(v) else np.nan)
                unknown = coded.isna() & features[column].notna()
                if unknown.any():
                    logger.debug(f"{int(unknown.sum())} unknown values in nominal column '{column}' treated as missing")
                matrix[:, i] = coded.to_numpy(dtype=float)
            else:
                matrix[:, i] = pd.to_numeric(features[column], errors='coerce').to_numpy(dtype=float)
        return matrix

    def encode(self, frame: pd.DataFrame, label_column: str,
               weight_column: Optional[str] = None) -> List[Example]:
        feature_columns = [c for c in frame.columns if c not in (label_column, weight_column)]
        matrix = self.encode_features(frame[feature_columns])
        labels = frame[label_column].to_numpy()
        if weight_column is not None:
            weights = pd.to_numeric(frame[weight_column], errors='coerce').fillna(0.0).to_numpy(dtype=float)
        else:
            weights = np.ones(len(frame))

        examples = []
        skipped = 0
        for row, label, weight in zip(matrix, labels, weights):
            class_index = self._class_index.get(label)
            if class_index is None:
                skipped += 1
                continue
            examples.append(Example(row, class_index, max(weight, 0.0)))

        if skipped:
            logger.warning(f"Skipped {skipped} records with labels outside the known classes {self.classes}")
        return examples


class DataFrameStreamReader(StreamReader):
    """Replays an in-memory DataFrame as consecutive micro-batches"""

    def __init__(self, df: pd.DataFrame, label_column: str, batch_size: int = 1000,
                 weight_column: Optional[str] = None,
                 classes: Optional[Sequence[Any]] = None,
                 feature_types: Optional[FeatureTypeArray] = None):
        """
        Initialize the reader

        Args:
            df: Source data
            label_column: Column holding the class label
            batch_size: Records per micro-batch
            weight_column: Optional column holding record weights
            classes: Class labels in index order (order of first appearance if None)
            feature_types: Feature descriptors (inferred from df if None)
        """
        if label_column not in df.columns:
            raise ValueError(f"Label column '{label_column}' not found in data")
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")

        self.df = df
        self.label_column = label_column
        self.weight_column = weight_column
        self.batch_size = batch_size

        feature_columns = [c for c in df.columns if c not in (label_column, weight_column)]
        self._classes = list(classes) if classes is not None else list(pd.unique(df[label_column].dropna()))
        self._feature_types = feature_types or FeatureTypeArray.from_dataframe(df[feature_columns])
        self.encoder = ExampleEncoder(self._feature_types, self._classes)

    @property
    def classes(self) -> List[Any]:
        return self._classes

    @property
    def feature_types(self) -> FeatureTypeArray:
        return self._feature_types

    def batches(self) -> Iterator[List[Example]]:
        for start in range(0, len(self.df), self.batch_size):
            chunk = self.df.iloc[start:start + self.batch_size]
            yield self.encoder.encode(chunk, self.label_column, self.weight_column)


class CSVStreamReader(StreamReader):
    """Reads a CSV file chunk by chunk, one micro-batch per chunk"""

    def __init__(self, path: Union[str, Path], label_column: str, batch_size: int = 1000,
                 weight_column: Optional[str] = None,
                 classes: Optional[Sequence[Any]] = None,
                 feature_types: Optional[FeatureTypeArray] = None,
                 **read_csv_kwargs):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Stream source not found: {self.path}")
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")

        self.label_column = label_column
        self.weight_column = weight_column
        self.batch_size = batch_size
        self.read_csv_kwargs = read_csv_kwargs

        # Feature value codings are fixed from the first chunk unless given
        head = pd.read_csv(self.path, nrows=batch_size, **read_csv_kwargs)
        if label_column not in head.columns:
            raise ValueError(f"Label column '{label_column}' not found in {self.path}")
        feature_columns = [c for c in head.columns if c not in (label_column, weight_column)]

        self._classes = list(classes) if classes is not None else self.scan_classes()
        self._feature_types = feature_types or FeatureTypeArray.from_dataframe(head[feature_columns])
        self.encoder = ExampleEncoder(self._feature_types, self._classes)

        logger.info(f"CSV stream {self.path.name}: {len(self._classes)} classes, "
                    f"{self._feature_types.num_features} features, batch size {batch_size}")

    def scan_classes(self) -> List[Any]:
        """
        Read the label column once to collect every class

        Returns:
            Class labels in order of first appearance in the file
        """
        classes: Dict[Any, None] = {}
        for chunk in pd.read_csv(self.path, usecols=[self.label_column], chunksize=max(self.batch_size, 10000),
                                 **self.read_csv_kwargs):
            for label in pd.unique(chunk[self.label_column].dropna()):
                classes.setdefault(label, None)
        return list(classes)

    @property
    def classes(self) -> List[Any]:
        return self._classes

    @property
    def feature_types(self) -> FeatureTypeArray:
        return self._feature_types

    def batches(self) -> Iterator[List[Example]]:
        for chunk in pd.read_csv(self.path, chunksize=self.batch_size, **self.read_csv_kwargs):
            yield self.encoder.encode(chunk, self.label_column, self.weight_column)
