"""Utilities for gbtree_leaf."""
