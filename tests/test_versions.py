"""Tests for version string normalization."""

import pytest

from pkgtrend.versions import is_prerelease, normalize_version


class TestNormalizeVersion:
    """Tests for normalize_version."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.2", "1.2"),
            ("1.2.3", "1.2.3"),
            ("1.2.0.0", "1.2.0.0"),
            ("01.02.003", "1.2.3"),
            ("1.2.3+build.5", "1.2.3"),
            ("1.1.0-beta", "1.1.0-beta"),
            ("1.1.0-Beta.2+sha.1", "1.1.0-beta.2"),
            ("2.0.0-rc-1", "2.0.0-rc-1"),
            ("  3.4.5  ", "3.4.5"),
        ],
    )
    def test_normalizes_known_shapes(self, raw, expected):
        assert normalize_version(raw) == expected

    def test_zero_build_segment_is_kept(self):
        """A zero build number is present, so 1.2 and 1.2.0 stay distinct."""
        assert normalize_version("1.2") != normalize_version("1.2.0")
        assert normalize_version("1.2.0") != normalize_version("1.2.0.0")

    @pytest.mark.parametrize("raw", ["Nightly", "  Latest-Build ", "1", "1.2.3.4.5", "v1.2"])
    def test_unparseable_core_returns_lowercased_input(self, raw):
        assert normalize_version(raw) == raw.strip().lower()

    def test_blank_input(self):
        assert normalize_version("") == ""
        assert normalize_version("   ") == ""

    @pytest.mark.parametrize(
        "raw",
        ["1.2", "1.02.0", "1.0.0-Alpha+x", "garbage", "1.2.3.4-rc.1", "+meta", "5.0-"],
    )
    def test_idempotent(self, raw):
        once = normalize_version(raw)
        assert normalize_version(once) == once

    def test_does_not_raise_on_odd_input(self):
        assert normalize_version("1..2") == "1..2"
        assert normalize_version("-beta") == "-beta"


class TestIsPrerelease:
    """Tests for is_prerelease."""

    def test_prerelease_label(self):
        assert is_prerelease("1.0.0-beta") is True

    def test_release(self):
        assert is_prerelease("1.0.0") is False

    def test_build_metadata_is_not_prerelease(self):
        assert is_prerelease("1.0.0+build-5") is False
