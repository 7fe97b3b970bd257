"""Layout constants of the binary model format."""

from dataclasses import dataclass

# Width of the learner-level parameter block at the head of the file.
LEARNER_PARAM_SIZE = 136

# Width of a single per-node statistics record (loss_chg, sum_hess,
# base_weight, leaf_child_cnt).
NODE_STAT_SIZE = 16


@dataclass(frozen=True)
class FormatLayout:
    """Widths of the opaque sections skipped by the reader.

    Both values are properties of the format version that wrote the file.
    Pass a custom layout when reading files from a version that changed them.

    Attributes:
        learner_param_size: Bytes in the learner parameter header.
        node_stat_size: Bytes in one node statistics record.
    """

    learner_param_size: int = LEARNER_PARAM_SIZE
    node_stat_size: int = NODE_STAT_SIZE

    def __post_init__(self) -> None:
        if self.learner_param_size < 0:
            raise ValueError(
                f"learner_param_size must be non-negative, got {self.learner_param_size}"
            )
        if self.node_stat_size < 0:
            raise ValueError(
                f"node_stat_size must be non-negative, got {self.node_stat_size}"
            )


DEFAULT_LAYOUT = FormatLayout()
