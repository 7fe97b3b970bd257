"""Parsing of line-oriented sparse feature data.

Each line reads ``label idx:value idx:value ...``; feature indices are
non-negative integers and values are stored with float32 precision.
"""

import os
from collections.abc import Iterable, Iterator

import numpy as np


def parse_feature_line(line: str) -> tuple[float, dict[int, float]]:
    """Parse one ``label idx:value ...`` line.

    Args:
        line: Text line; surrounding whitespace is ignored.

    Returns:
        The label and the feature mapping.

    Raises:
        ValueError: If the line is empty or a token is malformed.
    """
    terms = line.split()
    if not terms:
        raise ValueError("Empty feature line")

    label = float(terms[0])
    features: dict[int, float] = {}
    for term in terms[1:]:
        key, sep, value = term.partition(":")
        if not sep:
            raise ValueError(f"Malformed feature token {term!r}, expected idx:value")
        index = int(key)
        if index < 0:
            raise ValueError(f"Feature index must be non-negative, got {index}")
        features[index] = float(np.float32(value))
    return label, features


def iter_feature_file(
    path: str | os.PathLike,
) -> Iterator[tuple[float, dict[int, float]]]:
    """Yield parsed lines of a feature file, skipping blank lines."""
    with open(path, encoding="utf-8") as f:
        for line in f:
            if line.strip():
                yield parse_feature_line(line)


def to_dense(
    rows: Iterable[dict[int, float]], n_features: int | None = None
) -> np.ndarray:
    """Convert sparse rows to a float32 matrix with NaN for missing values.

    Args:
        rows: Feature mappings.
        n_features: Number of columns. Defaults to one past the largest
            index seen.

    Returns:
        Array of shape (n_rows, n_features).
    """
    rows = list(rows)
    if n_features is None:
        n_features = 1 + max((max(row, default=-1) for row in rows), default=-1)

    X = np.full((len(rows), n_features), np.nan, dtype=np.float32)
    for i, row in enumerate(rows):
        for index, value in row.items():
            if index < n_features:
                X[i, index] = value
    return X
