"""Binary model reading and writing."""

from gbtree_leaf.io.reader import ModelDeserializer, load_model
from gbtree_leaf.io.writer import dumps_model, save_model

__all__ = ["ModelDeserializer", "dumps_model", "load_model", "save_model"]
