"""gbtree_leaf - leaf-index inference for binary gradient boosted tree models."""

from gbtree_leaf.config import DEFAULT_LAYOUT, FormatLayout
from gbtree_leaf.ensemble import Ensemble, predict
from gbtree_leaf.exceptions import (
    InconsistentNodeReferenceError,
    ModelFormatError,
    TruncatedInputError,
)
from gbtree_leaf.io import ModelDeserializer, dumps_model, load_model, save_model
from gbtree_leaf.trees import Node, Tree

__version__ = "1.0.0"
__all__ = [
    "DEFAULT_LAYOUT",
    "Ensemble",
    "FormatLayout",
    "InconsistentNodeReferenceError",
    "ModelDeserializer",
    "ModelFormatError",
    "Node",
    "Tree",
    "TruncatedInputError",
    "dumps_model",
    "load_model",
    "predict",
    "save_model",
    "__version__",
]
