#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Errors Module for StreamTree
Exceptions raised by the tree core
"""


class TreeStructureError(Exception):
    """Custom exception for invalid tree topology operations."""
    pass


class StructuralMismatchError(TreeStructureError):
    """Raised when two nodes of diverging topology or variant are merged."""
    pass


class GraftIndexError(TreeStructureError, IndexError):
    """Raised when a child is grafted beyond the frontier of a split node."""
    pass
