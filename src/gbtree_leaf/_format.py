"""Record layouts of the binary gbtree model format.

All records are little-endian and packed exactly as the C structs that
wrote them, so each dtype's ``itemsize`` is the on-disk width.
"""

import numpy as np

# Length prefix of the variable-size blocks (component names, leaf vectors).
LENGTH_PREFIX_DTYPE = np.dtype("<u8")

GBTREE_MODEL_PARAM_DTYPE = np.dtype(
    [
        ("num_trees", "<i4"),
        ("num_roots", "<i4"),
        ("num_feature", "<i4"),
        ("pad_32bit", "<i4"),
        ("num_pbuffer_deprecated", "<i8"),
        ("num_output_group", "<i4"),
        ("size_leaf_vector", "<i4"),
        ("reserved", "<i4", (32,)),
    ]
)

TREE_PARAM_DTYPE = np.dtype(
    [
        ("num_roots", "<i4"),
        ("num_nodes", "<i4"),
        ("num_deleted", "<i4"),
        ("max_depth", "<i4"),
        ("num_feature", "<i4"),
        ("size_leaf_vector", "<i4"),
        ("reserved", "<i4", (31,)),
    ]
)

# parent: highest bit flags "is left child"; sindex: highest bit flags
# "default left"; info: leaf value or split condition.
NODE_DTYPE = np.dtype(
    [
        ("parent", "<i4"),
        ("cleft", "<i4"),
        ("cright", "<i4"),
        ("sindex", "<u4"),
        ("info", "<f4"),
    ]
)

TREE_INFO_DTYPE = np.dtype("<i4")

assert GBTREE_MODEL_PARAM_DTYPE.itemsize == 160
assert TREE_PARAM_DTYPE.itemsize == 148
assert NODE_DTYPE.itemsize == 20
