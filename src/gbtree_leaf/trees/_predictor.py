"""Leaf-index traversal of decoded trees.

Two entry points are provided: a per-instance walk over a sparse feature
mapping, and a Numba-compiled walk over a dense matrix that processes all
samples in parallel. Both route on ``value < threshold`` (ties go right)
and send missing features to the node's default child.
"""

from collections.abc import Mapping, Sequence
from typing import NamedTuple

import numpy as np
from numba import njit, prange

from gbtree_leaf.exceptions import InconsistentNodeReferenceError
from gbtree_leaf.trees._tree_structure import Tree


def normalize_features(features: Mapping[int, float]) -> dict[int, float]:
    """Round feature values to float32 so comparisons match the model."""
    return {int(key): float(np.float32(value)) for key, value in features.items()}


def predict_leaf_index(
    tree: Tree, features: Mapping[int, float], tree_index: int = 0
) -> int:
    """Walk one tree from the root and return the reached leaf position.

    Args:
        tree: Decoded tree.
        features: Feature index mapped to value. Absent keys are missing.
        tree_index: Position of the tree, used in error messages.

    Returns:
        Position of the leaf node reached.

    Raises:
        InconsistentNodeReferenceError: If a child index is out of range or
            the walk takes more steps than the tree has nodes.
    """
    nodes = tree.nodes
    n_nodes = len(nodes)
    if n_nodes == 0:
        raise InconsistentNodeReferenceError(tree_index, 0, "tree has no nodes")

    pid = 0
    steps = 0
    node = nodes[0]
    while not node.is_leaf():
        steps += 1
        if steps > n_nodes:
            raise InconsistentNodeReferenceError(
                tree_index, pid, f"no leaf reached after {n_nodes} steps"
            )

        feature = node.split_feature()
        if feature not in features:
            next_pid = node.default_child()
        elif features[feature] < node.split_threshold():
            next_pid = node.cleft
        else:
            next_pid = node.cright

        if not 0 <= next_pid < n_nodes:
            raise InconsistentNodeReferenceError(
                tree_index,
                pid,
                f"child index {next_pid} out of range for {n_nodes} nodes",
            )
        pid = next_pid
        node = nodes[pid]

    return pid


def predict_leaf_indices(
    trees: Sequence[Tree], features: Mapping[int, float]
) -> list[int]:
    """Leaf position reached in every tree, in tree order."""
    features = normalize_features(features)
    return [
        predict_leaf_index(tree, features, tree_index)
        for tree_index, tree in enumerate(trees)
    ]


class FlatForest(NamedTuple):
    """All trees' arrays concatenated, with per-tree offsets.

    Child indices stay local to their tree; ``offsets[t]`` is the position
    of tree ``t``'s root in the concatenated arrays.
    """

    offsets: np.ndarray  # (n_trees + 1,) int64
    left_children: np.ndarray  # (total_nodes,) int32
    right_children: np.ndarray  # (total_nodes,) int32
    split_features: np.ndarray  # (total_nodes,) int64
    default_left: np.ndarray  # (total_nodes,) bool
    thresholds: np.ndarray  # (total_nodes,) float32
    is_leaf: np.ndarray  # (total_nodes,) bool


def flatten_trees(trees: Sequence[Tree]) -> FlatForest:
    """Concatenate the parallel arrays of ``trees`` for the batch kernel."""
    sizes = np.array([tree.num_nodes for tree in trees], dtype=np.int64)
    offsets = np.zeros(len(trees) + 1, dtype=np.int64)
    np.cumsum(sizes, out=offsets[1:])

    def concat(name: str, dtype: type) -> np.ndarray:
        if not trees:
            return np.empty(0, dtype=dtype)
        return np.ascontiguousarray(
            np.concatenate([getattr(tree.arrays, name) for tree in trees]),
            dtype=dtype,
        )

    return FlatForest(
        offsets=offsets,
        left_children=concat("left_children", np.int32),
        right_children=concat("right_children", np.int32),
        split_features=concat("split_features", np.int64),
        default_left=concat("default_left", np.bool_),
        thresholds=concat("payloads", np.float32),
        is_leaf=concat("is_leaf", np.bool_),
    )


@njit(parallel=True, cache=True)
def _predict_leaf_batch_numba(
    X: np.ndarray,
    offsets: np.ndarray,
    left_children: np.ndarray,
    right_children: np.ndarray,
    split_features: np.ndarray,
    default_left: np.ndarray,
    thresholds: np.ndarray,
    is_leaf: np.ndarray,
) -> np.ndarray:
    """Leaf positions for every (sample, tree) pair.

    A failed walk stores ``-2 - pid`` where ``pid`` is the node at which the
    walk broke down, so the caller can report it.
    """
    n_samples, n_features = X.shape
    n_trees = offsets.shape[0] - 1
    out = np.empty((n_samples, n_trees), dtype=np.int32)

    for i in prange(n_samples):
        for t in range(n_trees):
            base = offsets[t]
            n_nodes = offsets[t + 1] - base
            if n_nodes == 0:
                out[i, t] = -2
                continue

            pid = 0
            steps = 0
            failed = False
            while not is_leaf[base + pid]:
                steps += 1
                if steps > n_nodes:
                    failed = True
                    break

                node = base + pid
                f = split_features[node]
                value = np.float32(0.0)
                missing = f >= n_features
                if not missing:
                    value = X[i, f]
                    missing = np.isnan(value)

                if missing:
                    if default_left[node]:
                        next_pid = left_children[node]
                    else:
                        next_pid = right_children[node]
                elif value < thresholds[node]:
                    next_pid = left_children[node]
                else:
                    next_pid = right_children[node]

                if next_pid < 0 or next_pid >= n_nodes:
                    failed = True
                    break
                pid = next_pid

            out[i, t] = -2 - pid if failed else pid

    return out


def predict_leaf_batch(forest: FlatForest, X: np.ndarray) -> np.ndarray:
    """Leaf positions for a dense matrix.

    Args:
        forest: Flattened trees from :func:`flatten_trees`.
        X: Features of shape (n_samples, n_features). NaN marks a missing
            value; features past the last column are missing too.

    Returns:
        int32 array of shape (n_samples, n_trees).

    Raises:
        ValueError: If ``X`` is not two-dimensional.
        InconsistentNodeReferenceError: If any walk breaks down.
    """
    X = np.ascontiguousarray(X, dtype=np.float32)
    if X.ndim != 2:
        raise ValueError(f"X must be 2-dimensional, got shape {X.shape}")

    out = _predict_leaf_batch_numba(X, *forest)

    if out.size and out.min() < 0:
        sample, tree_index = np.argwhere(out < 0)[0]
        pid = -2 - int(out[sample, tree_index])
        raise InconsistentNodeReferenceError(
            int(tree_index), pid, f"traversal of sample {int(sample)} did not reach a leaf"
        )
    return out
