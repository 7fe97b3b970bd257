"""Writer for the binary gbtree model layout.

Produces files the reader accepts: a zeroed learner header, the two
component names, the ensemble parameters, every tree with zeroed node
statistics, and one tree-info entry per tree at the end.
"""

import logging
import os
from collections.abc import Iterable
from typing import BinaryIO

import numpy as np

from gbtree_leaf._format import (
    GBTREE_MODEL_PARAM_DTYPE,
    LENGTH_PREFIX_DTYPE,
    TREE_INFO_DTYPE,
    TREE_PARAM_DTYPE,
)
from gbtree_leaf.config import DEFAULT_LAYOUT, FormatLayout
from gbtree_leaf.ensemble import Ensemble
from gbtree_leaf.trees._tree_structure import Tree

logger = logging.getLogger(__name__)


def _length_prefixed(payload: bytes) -> bytes:
    return np.array(len(payload), dtype=LENGTH_PREFIX_DTYPE).tobytes() + payload


def dumps_model(
    trees: Ensemble | Iterable[Tree],
    layout: FormatLayout = DEFAULT_LAYOUT,
    objective_name: bytes = b"reg:linear",
    booster_name: bytes = b"gbtree",
    num_feature: int | None = None,
    num_output_group: int | None = None,
    leaf_vectors: dict[int, bytes] | None = None,
) -> bytes:
    """Serialize trees into the binary layout.

    Args:
        trees: An ensemble or an iterable of trees.
        layout: Widths of the opaque sections.
        objective_name: Objective component name stored in the header.
        booster_name: Booster component name stored in the header.
        num_feature: Feature count; taken from the ensemble when omitted.
        num_output_group: Output group count; taken from the ensemble when
            omitted.
        leaf_vectors: Optional raw leaf-vector block per tree position. Trees
            listed here are written with a non-zero ``size_leaf_vector``.

    Returns:
        The serialized model.
    """
    if isinstance(trees, Ensemble):
        if num_feature is None:
            num_feature = trees.num_feature
        if num_output_group is None:
            num_output_group = trees.num_output_group
        trees = trees.trees
    trees = list(trees)
    num_feature = 0 if num_feature is None else num_feature
    num_output_group = 1 if num_output_group is None else num_output_group
    leaf_vectors = leaf_vectors or {}

    model_param = np.zeros(1, dtype=GBTREE_MODEL_PARAM_DTYPE)
    model_param["num_trees"] = len(trees)
    model_param["num_roots"] = 1
    model_param["num_feature"] = num_feature
    model_param["num_output_group"] = num_output_group

    chunks = [
        bytes(layout.learner_param_size),
        _length_prefixed(objective_name),
        _length_prefixed(booster_name),
        model_param.tobytes(),
    ]

    for tree_index, tree in enumerate(trees):
        leaf_vector = leaf_vectors.get(tree_index)

        tree_param = np.zeros(1, dtype=TREE_PARAM_DTYPE)
        tree_param["num_roots"] = 1
        tree_param["num_nodes"] = tree.num_nodes
        tree_param["max_depth"] = tree.max_depth()
        tree_param["num_feature"] = num_feature
        tree_param["size_leaf_vector"] = 1 if leaf_vector is not None else 0

        chunks.append(tree_param.tobytes())
        chunks.append(tree.to_records().tobytes())
        chunks.append(bytes(layout.node_stat_size * tree.num_nodes))
        if leaf_vector is not None:
            chunks.append(_length_prefixed(leaf_vector))

    chunks.append(np.zeros(len(trees), dtype=TREE_INFO_DTYPE).tobytes())
    data = b"".join(chunks)
    logger.debug(f"Serialized {len(trees)} trees into {len(data)} bytes")
    return data


def save_model(
    trees: Ensemble | Iterable[Tree],
    target: str | os.PathLike | BinaryIO,
    **kwargs,
) -> None:
    """Write trees to a path or binary file; see :func:`dumps_model`."""
    data = dumps_model(trees, **kwargs)
    if isinstance(target, (str, os.PathLike)):
        with open(target, "wb") as f:
            f.write(data)
    else:
        target.write(data)
