"""Exceptions raised while loading or traversing a tree ensemble."""


class ModelFormatError(ValueError):
    """Raised when a model file cannot be turned into an ensemble."""


class TruncatedInputError(ModelFormatError):
    """Raised when the stream ends before a section is fully read.

    Args:
        section: Name of the section being read.
        offset: Byte offset at which the read started.
        needed: Number of bytes the section requires.
        available: Number of bytes left in the stream.
    """

    def __init__(self, section: str, offset: int, needed: int, available: int) -> None:
        self.section = section
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"Truncated input while reading {section} at offset {offset}: "
            f"need {needed} bytes, {available} available"
        )


class InconsistentNodeReferenceError(ModelFormatError):
    """Raised when a tree references a node outside itself or loops back.

    Args:
        tree_index: Position of the offending tree in the ensemble.
        node_index: Position of the offending node in the tree.
        reason: Human readable description.
    """

    def __init__(self, tree_index: int, node_index: int, reason: str) -> None:
        self.tree_index = tree_index
        self.node_index = node_index
        super().__init__(f"Tree {tree_index}, node {node_index}: {reason}")
