"""Immutable tree ensemble with leaf-index prediction."""

import logging
import os
from collections.abc import Iterable, Iterator, Mapping

import numpy as np

from gbtree_leaf.trees._predictor import (
    flatten_trees,
    predict_leaf_batch,
    predict_leaf_indices,
)
from gbtree_leaf.trees._tree_structure import Tree

logger = logging.getLogger(__name__)


class Ensemble:
    """Ordered, read-only collection of trees loaded from a model file.

    Prediction methods do not mutate any state, so one ensemble can serve
    concurrent calls from several threads.

    Args:
        trees: Trees in model order. Output order of predictions follows it.
        num_feature: Feature count recorded in the model. Default is 0.
        num_output_group: Output group count recorded in the model.
            Default is 1.

    Attributes:
        num_feature: Feature count recorded in the model.
        num_output_group: Output group count recorded in the model.

    Example:
        >>> from gbtree_leaf import Ensemble
        >>> ensemble = Ensemble.from_file("model.bin")
        >>> ensemble.predict({0: 0.5, 7: 1.25})
        [3, 5, 1]
    """

    def __init__(
        self,
        trees: Iterable[Tree],
        num_feature: int = 0,
        num_output_group: int = 1,
    ) -> None:
        self._trees: tuple[Tree, ...] = tuple(trees)
        self.num_feature = num_feature
        self.num_output_group = num_output_group
        self._forest = flatten_trees(self._trees)

    @classmethod
    def from_file(cls, path: str | os.PathLike, **kwargs) -> "Ensemble":
        """Load an ensemble from a binary model file.

        Keyword arguments are passed to
        :class:`~gbtree_leaf.io.reader.ModelDeserializer`.
        """
        from gbtree_leaf.io.reader import ModelDeserializer

        return ModelDeserializer(**kwargs).load(path)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview, **kwargs) -> "Ensemble":
        """Load an ensemble from an in-memory binary model."""
        from gbtree_leaf.io.reader import ModelDeserializer

        return ModelDeserializer(**kwargs).loads(data)

    @property
    def trees(self) -> tuple[Tree, ...]:
        return self._trees

    @property
    def num_trees(self) -> int:
        return len(self._trees)

    def __len__(self) -> int:
        return len(self._trees)

    def __iter__(self) -> Iterator[Tree]:
        return iter(self._trees)

    def __getitem__(self, index: int) -> Tree:
        return self._trees[index]

    def __repr__(self) -> str:
        return (
            f"Ensemble(num_trees={self.num_trees}, "
            f"num_feature={self.num_feature}, "
            f"num_output_group={self.num_output_group})"
        )

    def validate(self) -> None:
        """Check every tree's child references.

        Raises:
            InconsistentNodeReferenceError: On the first broken tree.
        """
        for tree_index, tree in enumerate(self._trees):
            tree.validate(tree_index)
        logger.debug(f"Validated {self.num_trees} trees")

    def predict(self, features: Mapping[int, float]) -> list[int]:
        """Leaf position reached in each tree for one instance.

        Args:
            features: Feature index mapped to value. A feature absent from
                the mapping is missing and follows the default direction.

        Returns:
            One leaf node position per tree, in tree order.

        Raises:
            InconsistentNodeReferenceError: If a walk leaves its tree or
                does not reach a leaf.
        """
        return predict_leaf_indices(self._trees, features)

    def predict_leaf_values(self, features: Mapping[int, float]) -> list[float]:
        """Leaf values of the leaves reached in each tree (not summed)."""
        leaves = self.predict(features)
        return [tree[pid].leaf_value() for tree, pid in zip(self._trees, leaves)]

    def predict_leaf_batch(self, X: np.ndarray) -> np.ndarray:
        """Leaf positions for every row of a dense matrix.

        Args:
            X: Features of shape (n_samples, n_features). NaN marks a
                missing value.

        Returns:
            int32 array of shape (n_samples, num_trees).
        """
        return predict_leaf_batch(self._forest, X)


def predict(ensemble: Ensemble, features: Mapping[int, float]) -> list[int]:
    """Functional form of :meth:`Ensemble.predict`."""
    return ensemble.predict(features)
