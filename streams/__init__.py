#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Streams Module for StreamTree
Records, feature descriptors and micro-batch sources
"""

from .example import Example, FeatureType, NumericFeatureType, NominalFeatureType, FeatureTypeArray
from .stream_reader import StreamReader, DataFrameStreamReader, CSVStreamReader, ExampleEncoder

__all__ = [
    'Example',
    'FeatureType',
    'NumericFeatureType',
    'NominalFeatureType',
    'FeatureTypeArray',
    'StreamReader',
    'DataFrameStreamReader',
    'CSVStreamReader',
    'ExampleEncoder'
]
