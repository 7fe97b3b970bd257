"""Tree data structures decoded from the binary model format."""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np

from gbtree_leaf._format import NODE_DTYPE
from gbtree_leaf.exceptions import InconsistentNodeReferenceError

# Child index marking "no child"; a node whose left child is this is a leaf.
NO_CHILD = -1

_DEFAULT_LEFT_BIT = 1 << 31
_SPLIT_INDEX_MASK = _DEFAULT_LEFT_BIT - 1
_IS_LEFT_CHILD_BIT = 1 << 31


def pack_split_index(feature: int, default_left: bool) -> int:
    """Pack a feature index and a default direction into one uint32.

    Args:
        feature: Feature index in ``[0, 2**31)``.
        default_left: Whether missing values go to the left child.

    Returns:
        Packed unsigned split index.

    Raises:
        ValueError: If the feature index does not fit in 31 bits.
    """
    if not 0 <= feature <= _SPLIT_INDEX_MASK:
        raise ValueError(f"Feature index must be in [0, 2**31), got {feature}")
    return int(feature) | (_DEFAULT_LEFT_BIT if default_left else 0)


def unpack_split_index(sindex: int) -> tuple[int, bool]:
    """Inverse of :func:`pack_split_index`."""
    return sindex & _SPLIT_INDEX_MASK, (sindex >> 31) != 0


def _to_float32(value: float) -> float:
    return float(np.float32(value))


@dataclass(frozen=True)
class Node:
    """One fixed-size node record.

    The raw fields mirror the on-disk record. ``info`` holds either the
    split threshold or the leaf value; which one is decided by
    :meth:`is_leaf`, so only call :meth:`split_threshold` on internal nodes
    and :meth:`leaf_value` on leaves.

    Attributes:
        parent: Parent index; the high bit marks a left child.
        cleft: Left child index or ``NO_CHILD``.
        cright: Right child index or ``NO_CHILD``.
        sindex: Packed feature index (low 31 bits) and default-left flag.
        info: 32-bit payload, threshold or leaf value.
    """

    parent: int
    cleft: int
    cright: int
    sindex: int
    info: float

    @classmethod
    def leaf(cls, value: float, parent: int = NO_CHILD) -> "Node":
        """Create a leaf node carrying ``value``."""
        return cls(parent, NO_CHILD, NO_CHILD, 0, _to_float32(value))

    @classmethod
    def split(
        cls,
        feature: int,
        threshold: float,
        left: int,
        right: int,
        default_left: bool = False,
        parent: int = NO_CHILD,
    ) -> "Node":
        """Create an internal node testing ``feature < threshold``."""
        return cls(
            parent,
            left,
            right,
            pack_split_index(feature, default_left),
            _to_float32(threshold),
        )

    @property
    def left_child(self) -> int:
        return self.cleft

    @property
    def right_child(self) -> int:
        return self.cright

    @property
    def parent_index(self) -> int:
        """Parent position with the left-child flag stripped."""
        if self.parent == NO_CHILD:
            return NO_CHILD
        return self.parent & _SPLIT_INDEX_MASK

    def is_left_child(self) -> bool:
        return self.parent != NO_CHILD and (self.parent & _IS_LEFT_CHILD_BIT) != 0

    def is_root(self) -> bool:
        return self.parent == NO_CHILD

    def is_leaf(self) -> bool:
        return self.cleft == NO_CHILD

    def split_feature(self) -> int:
        return self.sindex & _SPLIT_INDEX_MASK

    def default_goes_left(self) -> bool:
        return (self.sindex >> 31) != 0

    def default_child(self) -> int:
        return self.cleft if self.default_goes_left() else self.cright

    def split_threshold(self) -> float:
        return self.info

    def leaf_value(self) -> float:
        return self.info


@dataclass(frozen=True)
class TreeArrays:
    """Tree stored as parallel arrays for compiled traversal.

    Attributes:
        left_children: Left child per node, ``-1`` for leaves.
        right_children: Right child per node.
        split_features: Decoded feature index per node.
        default_left: Default direction per node.
        payloads: Threshold (internal) or leaf value (leaf) per node.
        is_leaf: Leaf mask.
    """

    left_children: np.ndarray  # (n_nodes,) int32
    right_children: np.ndarray  # (n_nodes,) int32
    split_features: np.ndarray  # (n_nodes,) int64
    default_left: np.ndarray  # (n_nodes,) bool
    payloads: np.ndarray  # (n_nodes,) float32
    is_leaf: np.ndarray  # (n_nodes,) bool

    @classmethod
    def from_records(cls, records: np.ndarray) -> "TreeArrays":
        sindex = records["sindex"].astype(np.int64)
        arrays = cls(
            left_children=records["cleft"].astype(np.int32),
            right_children=records["cright"].astype(np.int32),
            split_features=sindex & _SPLIT_INDEX_MASK,
            default_left=(sindex >> 31) != 0,
            payloads=records["info"].astype(np.float32),
            is_leaf=records["cleft"] == NO_CHILD,
        )
        for array in (
            arrays.left_children,
            arrays.right_children,
            arrays.split_features,
            arrays.default_left,
            arrays.payloads,
            arrays.is_leaf,
        ):
            array.setflags(write=False)
        return arrays


class Tree:
    """Ordered, immutable sequence of nodes; position 0 is the root.

    Args:
        nodes: Nodes in array order. Child indices refer to positions in
            this sequence.
    """

    __slots__ = ("_nodes", "_arrays")

    def __init__(self, nodes: Sequence[Node]) -> None:
        self._nodes: tuple[Node, ...] = tuple(nodes)
        self._arrays = TreeArrays.from_records(self.to_records())

    @classmethod
    def from_records(cls, records: np.ndarray) -> "Tree":
        """Build a tree from an array of ``NODE_DTYPE`` records."""
        nodes = [
            Node(int(parent), int(cleft), int(cright), int(sindex), float(info))
            for parent, cleft, cright, sindex, info in records.tolist()
        ]
        return cls(nodes)

    def to_records(self) -> np.ndarray:
        """Return the nodes as an array of ``NODE_DTYPE`` records."""
        records = np.zeros(len(self._nodes), dtype=NODE_DTYPE)
        for i, node in enumerate(self._nodes):
            records[i] = (node.parent, node.cleft, node.cright, node.sindex, node.info)
        return records

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def arrays(self) -> TreeArrays:
        return self._arrays

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"Tree(num_nodes={self.num_nodes})"

    def leaf_indices(self) -> list[int]:
        """Positions of all leaf nodes in array order."""
        return [i for i, node in enumerate(self._nodes) if node.is_leaf()]

    def validate(self, tree_index: int = 0) -> None:
        """Check that the nodes reachable from the root form a tree.

        Every child index of a reachable internal node must be a valid
        position and no node may be reached twice. Unreachable positions
        (deleted nodes) are allowed.

        Args:
            tree_index: Position of this tree, used in error messages.

        Raises:
            InconsistentNodeReferenceError: If the structure is not a tree.
        """
        n_nodes = len(self._nodes)
        if n_nodes == 0:
            raise InconsistentNodeReferenceError(tree_index, 0, "tree has no nodes")

        seen = bytearray(n_nodes)
        seen[0] = 1
        stack = [0]
        while stack:
            pid = stack.pop()
            node = self._nodes[pid]
            if node.is_leaf():
                continue
            for child in (node.cleft, node.cright):
                if not 0 <= child < n_nodes:
                    raise InconsistentNodeReferenceError(
                        tree_index,
                        pid,
                        f"child index {child} out of range for {n_nodes} nodes",
                    )
                if seen[child]:
                    raise InconsistentNodeReferenceError(
                        tree_index, pid, f"node {child} is reached more than once"
                    )
                seen[child] = 1
                stack.append(child)

    def max_depth(self) -> int:
        """Depth of the deepest node reachable from the root (root = 0).

        Out-of-range children are ignored and the result is capped at
        ``num_nodes``, so this terminates on malformed trees too.
        """
        n_nodes = len(self._nodes)
        depth = 0
        frontier = {0} if n_nodes else set()
        while frontier and depth < n_nodes:
            next_frontier = set()
            for pid in frontier:
                node = self._nodes[pid]
                if not node.is_leaf():
                    next_frontier.update(
                        c for c in (node.cleft, node.cright) if 0 <= c < n_nodes
                    )
            if not next_frontier:
                break
            depth += 1
            frontier = next_frontier
        return depth
