"""Deserializer for binary gbtree model files.

The file is buffered whole and read with a forward-only cursor. Sections
that inference does not need (learner header, component names, node
statistics, leaf vectors, trailing tree info) are skipped by width.
"""

import logging
import os
from typing import BinaryIO

import numpy as np

from gbtree_leaf._format import (
    GBTREE_MODEL_PARAM_DTYPE,
    LENGTH_PREFIX_DTYPE,
    NODE_DTYPE,
    TREE_PARAM_DTYPE,
)
from gbtree_leaf.config import DEFAULT_LAYOUT, FormatLayout
from gbtree_leaf.ensemble import Ensemble
from gbtree_leaf.exceptions import ModelFormatError, TruncatedInputError
from gbtree_leaf.trees._tree_structure import Tree

logger = logging.getLogger(__name__)

ModelSource = str | os.PathLike | bytes | bytearray | memoryview | BinaryIO


class _ByteCursor:
    """Forward-only read cursor over an in-memory buffer."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._view = memoryview(data).cast("B")
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._view) - self.offset

    def _require(self, n_bytes: int, section: str) -> None:
        if n_bytes > self.remaining:
            raise TruncatedInputError(section, self.offset, n_bytes, self.remaining)

    def skip(self, n_bytes: int, section: str) -> None:
        self._require(n_bytes, section)
        self.offset += n_bytes

    def read_records(self, dtype: np.dtype, count: int, section: str) -> np.ndarray:
        n_bytes = dtype.itemsize * count
        self._require(n_bytes, section)
        records = np.frombuffer(
            self._view, dtype=dtype, count=count, offset=self.offset
        )
        self.offset += n_bytes
        return records

    def read_record(self, dtype: np.dtype, section: str) -> np.generic:
        return self.read_records(dtype, 1, section)[0]

    def skip_length_prefixed(self, section: str) -> int:
        length = int(self.read_record(LENGTH_PREFIX_DTYPE, f"{section} length"))
        self.skip(length, section)
        return length


def _read_source(source: ModelSource) -> bytes | bytearray | memoryview:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return source
    if isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            return f.read()
    return source.read()


class ModelDeserializer:
    """Reconstruct an :class:`Ensemble` from the binary gbtree layout.

    Args:
        layout: Widths of the opaque sections. Default matches the format
            version whose node statistics are 16 bytes wide.
        validate: Whether to check every tree's child references after
            loading. Default is True.

    Example:
        >>> from gbtree_leaf.io import ModelDeserializer
        >>> ensemble = ModelDeserializer().load("model.bin")
        >>> ensemble.predict({3: 1.0})
    """

    def __init__(
        self, layout: FormatLayout = DEFAULT_LAYOUT, validate: bool = True
    ) -> None:
        self.layout = layout
        self.validate = validate

    def load(self, source: ModelSource) -> Ensemble:
        """Read a model from a path, a bytes-like object or a binary file.

        Args:
            source: Where to read the model from.

        Returns:
            The loaded ensemble.

        Raises:
            TruncatedInputError: If the data ends before a section is read.
            ModelFormatError: If a count in the data is negative.
            InconsistentNodeReferenceError: If validation is enabled and a
                tree's child references are broken.
        """
        return self.loads(_read_source(source))

    def loads(self, data: bytes | bytearray | memoryview) -> Ensemble:
        """Read a model from an in-memory buffer."""
        cursor = _ByteCursor(data)

        cursor.skip(self.layout.learner_param_size, "learner parameters")
        cursor.skip_length_prefixed("objective name")
        cursor.skip_length_prefixed("booster name")

        model_param = cursor.read_record(
            GBTREE_MODEL_PARAM_DTYPE, "gbtree model parameters"
        )
        num_trees = int(model_param["num_trees"])
        if num_trees < 0:
            raise ModelFormatError(f"Negative tree count {num_trees}")

        trees = [self._read_tree(cursor, i) for i in range(num_trees)]

        ensemble = Ensemble(
            trees,
            num_feature=int(model_param["num_feature"]),
            num_output_group=int(model_param["num_output_group"]),
        )
        if self.validate:
            ensemble.validate()

        logger.info(
            f"Loaded {num_trees} trees from {cursor.offset} bytes "
            f"({cursor.remaining} trailing bytes unread)"
        )
        return ensemble

    def _read_tree(self, cursor: _ByteCursor, tree_index: int) -> Tree:
        tree_param = cursor.read_record(
            TREE_PARAM_DTYPE, f"tree {tree_index} parameters"
        )
        num_nodes = int(tree_param["num_nodes"])
        if num_nodes < 0:
            raise ModelFormatError(
                f"Tree {tree_index} has negative node count {num_nodes}"
            )

        records = cursor.read_records(
            NODE_DTYPE, num_nodes, f"tree {tree_index} nodes"
        )
        cursor.skip(
            self.layout.node_stat_size * num_nodes,
            f"tree {tree_index} node statistics",
        )

        leaf_vector_bytes = 0
        if int(tree_param["size_leaf_vector"]) != 0:
            leaf_vector_bytes = cursor.skip_length_prefixed(
                f"tree {tree_index} leaf vector"
            )

        logger.debug(
            f"Tree {tree_index}: {num_nodes} nodes, "
            f"{leaf_vector_bytes} leaf vector bytes skipped"
        )
        return Tree.from_records(records)


def load_model(
    source: ModelSource, layout: FormatLayout = DEFAULT_LAYOUT, validate: bool = True
) -> Ensemble:
    """Load an ensemble from a binary model; see :class:`ModelDeserializer`."""
    return ModelDeserializer(layout=layout, validate=validate).load(source)
