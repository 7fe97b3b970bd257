"""Decoded tree structures and leaf-index traversal."""

from gbtree_leaf.trees._predictor import predict_leaf_index, predict_leaf_indices
from gbtree_leaf.trees._tree_structure import (
    NO_CHILD,
    Node,
    Tree,
    TreeArrays,
    pack_split_index,
    unpack_split_index,
)

__all__ = [
    "NO_CHILD",
    "Node",
    "Tree",
    "TreeArrays",
    "pack_split_index",
    "predict_leaf_index",
    "predict_leaf_indices",
    "unpack_split_index",
]
