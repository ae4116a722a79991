# tests/test_paths.py
"""
Tests for name path and id path encoding.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class TestNamePaths:
    """Tests for encode_names / decode_names."""

    def test_simple_path(self):
        """Plain names are joined with the delimiter."""
        from sessiontree.sessions.paths import decode_names, encode_names

        assert encode_names(["a", "b", "c"]) == "a/b/c"
        assert decode_names("a/b/c") == ["a", "b", "c"]

    def test_delimiter_inside_name_is_doubled(self):
        """A '/' inside a name is written twice."""
        from sessiontree.sessions.paths import decode_names, encode_names

        assert encode_names(["a/b", "c"]) == "a//b/c"
        assert decode_names("a//b/c") == ["a/b", "c"]

    def test_round_trip_with_awkward_names(self):
        """Names with trailing and repeated delimiters survive a round trip."""
        from sessiontree.sessions.paths import decode_names, encode_names

        for names in (
            ["Sessions", "prod/", "db//1"],
            ["x/y/z"],
            ["Sessions", "Production DB", "web 01"],
            ["ünïcode", "名前"],
        ):
            assert decode_names(encode_names(names)) == names

    def test_single_name(self):
        """A one-element path has no delimiter."""
        from sessiontree.sessions.paths import decode_names, encode_names

        assert encode_names(["only"]) == "only"
        assert decode_names("only") == ["only"]

    @pytest.mark.parametrize(
        "names",
        [[], [""], ["a", ""], ["a\nb"], ["a\rb"], ["a\0b"], ["/leading"]],
    )
    def test_encode_rejects_invalid_names(self, names):
        """Empty paths, empty names, control characters and a leading delimiter are rejected."""
        from sessiontree.sessions.paths import encode_names
        from sessiontree.utils.exceptions import InvalidPathError

        with pytest.raises(InvalidPathError):
            encode_names(names)

    @pytest.mark.parametrize("path", ["", "a/", "/a", "a/b/", "a/\nb"])
    def test_decode_rejects_malformed_paths(self, path):
        """Empty input, trailing and leading single delimiters are malformed."""
        from sessiontree.sessions.paths import decode_names
        from sessiontree.utils.exceptions import InvalidPathError

        with pytest.raises(InvalidPathError):
            decode_names(path)

    def test_validate_name(self):
        """validate_name returns valid names unchanged."""
        from sessiontree.sessions.paths import validate_name
        from sessiontree.utils.exceptions import InvalidPathError

        assert validate_name("web/01") == "web/01"
        with pytest.raises(InvalidPathError):
            validate_name("")


class TestIdPaths:
    """Tests for encode_id_path / decode_id_path."""

    def test_encode(self):
        """Ancestor ids and the leaf id are joined with dots."""
        from sessiontree.sessions.paths import encode_id_path

        assert encode_id_path([0, 3], 5) == "0.3.5"
        assert encode_id_path([], 7) == "7"

    def test_round_trip(self):
        """Decoding an encoded id path yields the same ids."""
        from sessiontree.sessions.paths import decode_id_path, encode_id_path

        for ids, leaf in (([], 0), ([1], 2), ([10, 0, 42], 99)):
            assert decode_id_path(encode_id_path(ids, leaf)) == (ids, leaf)

    def test_encode_rejects_negative_ids(self):
        """Negative ids cannot be encoded."""
        from sessiontree.sessions.paths import encode_id_path
        from sessiontree.utils.exceptions import InvalidPathError

        with pytest.raises(InvalidPathError):
            encode_id_path([1, -2], 3)

    @pytest.mark.parametrize("path", ["", "1..2", "a.1", "1.-2", ".1", "1."])
    def test_decode_rejects_malformed(self, path):
        """Empty, non-numeric and negative segments are malformed."""
        from sessiontree.sessions.paths import decode_id_path
        from sessiontree.utils.exceptions import InvalidPathError

        with pytest.raises(InvalidPathError):
            decode_id_path(path)
