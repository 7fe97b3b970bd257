"""Tests for node and tree structures."""

import numpy as np
import pytest

from gbtree_leaf import InconsistentNodeReferenceError
from gbtree_leaf.trees import (
    NO_CHILD,
    Node,
    Tree,
    pack_split_index,
    unpack_split_index,
)


def stump(feature: int = 3, threshold: float = 1.5, default_left: bool = False) -> Tree:
    return Tree(
        [
            Node.split(feature, threshold, 1, 2, default_left=default_left),
            Node.leaf(-0.25, parent=0),
            Node.leaf(0.75, parent=0),
        ]
    )


class TestSplitIndexPacking:
    """Tests for the packed feature index / default direction field."""

    @pytest.mark.parametrize("feature", [0, 1, 3, 12345, 2**30, 2**31 - 1])
    @pytest.mark.parametrize("default_left", [True, False])
    def test_pack_unpack(self, feature: int, default_left: bool) -> None:
        """Test that packing then unpacking returns the original pair."""
        sindex = pack_split_index(feature, default_left)
        assert 0 <= sindex < 2**32
        assert unpack_split_index(sindex) == (feature, default_left)

    def test_high_bit_is_default_left(self) -> None:
        """Test the exact bit position of the default direction."""
        assert pack_split_index(7, True) == (1 << 31) | 7
        assert pack_split_index(7, False) == 7

    @pytest.mark.parametrize("feature", [-1, 2**31, 2**32])
    def test_out_of_range_feature(self, feature: int) -> None:
        """Test that features not fitting in 31 bits are rejected."""
        with pytest.raises(ValueError, match="Feature index"):
            pack_split_index(feature, False)


class TestNode:
    """Tests for Node accessors."""

    def test_leaf(self) -> None:
        """Test leaf accessors."""
        node = Node.leaf(0.5)
        assert node.is_leaf()
        assert node.left_child == NO_CHILD
        assert node.leaf_value() == 0.5

    def test_split(self) -> None:
        """Test internal node accessors."""
        node = Node.split(42, 2.5, 1, 2, default_left=True)
        assert not node.is_leaf()
        assert node.split_feature() == 42
        assert node.default_goes_left()
        assert node.split_threshold() == 2.5
        assert node.left_child == 1
        assert node.right_child == 2

    @pytest.mark.parametrize("default_left, expected", [(True, 4), (False, 9)])
    def test_default_child(self, default_left: bool, expected: int) -> None:
        """Test default child follows the default direction flag."""
        node = Node.split(0, 0.0, 4, 9, default_left=default_left)
        assert node.default_child() == expected

    def test_payload_is_float32(self) -> None:
        """Test payload is rounded to 32-bit precision."""
        node = Node.split(0, 0.1, 1, 2)
        assert node.split_threshold() == float(np.float32(0.1))
        assert node.split_threshold() != 0.1

    def test_parent_flags(self) -> None:
        """Test decoding of the left-child flag in the parent field."""
        packed = int(np.array(5 | (1 << 31), dtype=np.uint32).view(np.int32))
        left = Node(packed, NO_CHILD, NO_CHILD, 0, 0.0)
        right = Node(5, NO_CHILD, NO_CHILD, 0, 0.0)
        root = Node.leaf(0.0)

        assert left.parent_index == 5
        assert left.is_left_child()
        assert right.parent_index == 5
        assert not right.is_left_child()
        assert root.is_root()
        assert not root.is_left_child()
        assert root.parent_index == NO_CHILD

    def test_immutable(self) -> None:
        """Test nodes cannot be modified."""
        node = Node.leaf(1.0)
        with pytest.raises(AttributeError):
            node.cleft = 3


class TestTree:
    """Tests for Tree."""

    def test_basic(self) -> None:
        """Test sequence behaviour."""
        tree = stump()
        assert tree.num_nodes == 3
        assert len(tree) == 3
        assert tree[0].split_feature() == 3
        assert [node.is_leaf() for node in tree] == [False, True, True]
        assert tree.leaf_indices() == [1, 2]

    def test_arrays(self) -> None:
        """Test the parallel array view matches the nodes."""
        tree = stump(feature=9, threshold=2.0, default_left=True)
        arrays = tree.arrays

        np.testing.assert_array_equal(arrays.left_children, [1, -1, -1])
        np.testing.assert_array_equal(arrays.right_children, [2, -1, -1])
        np.testing.assert_array_equal(arrays.is_leaf, [False, True, True])
        assert arrays.split_features[0] == 9
        assert arrays.default_left[0]
        assert arrays.payloads.dtype == np.float32
        assert arrays.payloads[0] == 2.0
        assert not arrays.is_leaf.flags.writeable

    def test_records_round_trip(self) -> None:
        """Test conversion through on-disk records keeps every node."""
        tree = stump(default_left=True)
        assert Tree.from_records(tree.to_records()).nodes == tree.nodes

    def test_max_depth(self) -> None:
        """Test depth of root-only and deeper trees."""
        assert Tree([Node.leaf(0.0)]).max_depth() == 0
        assert stump().max_depth() == 1

        deeper = Tree(
            [
                Node.split(0, 1.0, 1, 2),
                Node.split(1, 1.0, 3, 4, parent=0),
                Node.leaf(0.0, parent=0),
                Node.leaf(1.0, parent=1),
                Node.leaf(2.0, parent=1),
            ]
        )
        assert deeper.max_depth() == 2

    def test_validate_ok(self) -> None:
        """Test well-formed trees pass validation."""
        stump().validate()
        Tree([Node.leaf(0.0)]).validate()

    def test_validate_allows_unreachable_nodes(self) -> None:
        """Test deleted (unreachable) nodes do not fail validation."""
        tree = Tree([Node.leaf(0.0), Node.split(0, 1.0, 7, 8)])
        tree.validate()

    def test_validate_empty(self) -> None:
        """Test a tree without nodes is rejected."""
        with pytest.raises(InconsistentNodeReferenceError, match="no nodes"):
            Tree([]).validate(4)

    def test_validate_out_of_range(self) -> None:
        """Test child indices past the end are rejected."""
        tree = Tree([Node.split(0, 1.0, 1, 5), Node.leaf(0.0)])
        with pytest.raises(InconsistentNodeReferenceError) as excinfo:
            tree.validate(2)
        assert excinfo.value.tree_index == 2
        assert excinfo.value.node_index == 0

    def test_validate_cycle(self) -> None:
        """Test a child pointing back to an ancestor is rejected."""
        tree = Tree(
            [
                Node.split(0, 1.0, 1, 2),
                Node.split(0, 1.0, 0, 2),
                Node.leaf(0.0),
            ]
        )
        with pytest.raises(InconsistentNodeReferenceError, match="more than once"):
            tree.validate()

    def test_max_depth_terminates_on_cycle(self) -> None:
        """Test depth computation stops on malformed trees."""
        tree = Tree([Node.split(0, 1.0, 0, 0)])
        assert tree.max_depth() <= 1
