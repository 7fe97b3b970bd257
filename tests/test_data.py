"""Tests for feature line parsing utilities."""

import numpy as np
import pytest

from gbtree_leaf import Ensemble, Node, Tree
from gbtree_leaf.utils.data import iter_feature_file, parse_feature_line, to_dense


class TestParseFeatureLine:
    """Tests for parse_feature_line."""

    def test_basic(self) -> None:
        """Test label and features are parsed."""
        label, features = parse_feature_line("1 3:1.5 10:0.1\n")
        assert label == 1.0
        assert features == {3: 1.5, 10: float(np.float32(0.1))}

    def test_label_only(self) -> None:
        """Test a line with no features gives an empty mapping."""
        assert parse_feature_line("0") == (0.0, {})

    def test_extra_whitespace(self) -> None:
        """Test repeated separators are ignored."""
        assert parse_feature_line("  2   0:1  5:-2 ") == (2.0, {0: 1.0, 5: -2.0})

    @pytest.mark.parametrize("line", ["", "   ", "1 3-1.5", "1 a:1.0", "1 -2:1.0"])
    def test_malformed(self, line: str) -> None:
        """Test malformed lines raise ValueError."""
        with pytest.raises(ValueError):
            parse_feature_line(line)


class TestFeatureFile:
    """Tests for iter_feature_file and to_dense."""

    def test_iter_and_predict(self, tmp_path) -> None:
        """Test parsed rows drive predictions like a batch driver would."""
        path = tmp_path / "test.txt"
        path.write_text("1 3:1.0\n\n0 3:2.0\n0\n", encoding="utf-8")

        ensemble = Ensemble(
            [
                Tree(
                    [
                        Node.split(3, 1.5, 1, 2),
                        Node.leaf(0.0, parent=0),
                        Node.leaf(1.0, parent=0),
                    ]
                )
            ]
        )
        rows = list(iter_feature_file(path))

        assert [label for label, _ in rows] == [1.0, 0.0, 0.0]
        assert [ensemble.predict(features) for _, features in rows] == [[1], [2], [2]]

    def test_to_dense(self) -> None:
        """Test missing entries become NaN."""
        X = to_dense([{0: 1.0, 2: 3.0}, {1: 2.0}])

        assert X.shape == (2, 3)
        assert X.dtype == np.float32
        np.testing.assert_array_equal(np.isnan(X), [[False, True, False], [True, False, True]])
        assert X[0, 2] == 3.0

    def test_to_dense_width(self) -> None:
        """Test explicit width drops features beyond it."""
        X = to_dense([{0: 1.0, 9: 3.0}], n_features=2)
        assert X.shape == (1, 2)
        assert X[0, 0] == 1.0
        assert np.isnan(X[0, 1])

    def test_to_dense_empty(self) -> None:
        """Test no rows and no features."""
        assert to_dense([]).shape == (0, 0)
        assert to_dense([{}]).shape == (1, 0)
