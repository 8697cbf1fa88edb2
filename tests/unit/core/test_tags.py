"""
Unit tests for tag listing parsing and release ordering.
"""

import pytest

from reposync.core.tags import (
    VersionTag,
    latest_tag,
    listing_contains_tag,
    ordered_tag_names,
    parse_tag_listing,
    parse_version,
    release_tag_pattern,
)

RAW_LISTING = """\
d6d1c4a1cee0e7c1dcbc19b5aa2f2fbdbc4d7e3b        refs/tags/version/23.1.0-RC.33
0ad5a4f0b7fa8d32d0b7e5a48fb7c4fce5e6f3c1        refs/tags/version/23.1.0
bb1bba8de32e0ba0c1dd3b0aa0e43f3ee0eb5c7a        refs/tags/version/23.1.0-RC.1
c3f1c53f1d74d4a0b2e3b4b25e3b6e3c9d6f9e1a        refs/tags/version/23.1.0-RC.2
2c7a8e3b7d7a9fe12c7c39e7fb0cb6c8a51c0b3e        refs/tags/version/23.1.0-RC.11
7e3f5d2b9b1a4c0f3e2d1c0b9a8f7e6d5c4b3a21        refs/tags/version/23.1.0-RC.21
a1b2c3d4e5f60718293a4b5c6d7e8f9012345678        refs/tags/version/23.1.0-RC.4
b2c3d4e5f60718293a4b5c6d7e8f901234567891        refs/tags/version/23.1.1.5
c3d4e5f60718293a4b5c6d7e8f90123456789123        refs/tags/version/23.1.1
d4e5f60718293a4b5c6d7e8f9012345678912345        refs/tags/version/23.1.2
e5f60718293a4b5c6d7e8f901234567891234567        refs/tags/version/23.1.2-RC.0
f60718293a4b5c6d7e8f90123456789123456789        refs/tags/version/23.1.3
0718293a4b5c6d7e8f9012345678912345678912        refs/tags/version/23.1.4

ad37a5c4f1e8bb7c1d0c8f5c7e4b3a2d1e0f9a8b        refs/tags/version/FOO
18293a4b5c6d7e8f901234567891234567891234        refs/tags/version/23.1.1.55
luhgaoerfgao
8293a4b5c6d7e8f90123456789123456789123456        refs/tags/version/23.1.2.5
293a4b5c6d7e8f9012345678912345678912345678        refs/tags/version/23.1.12.5
93a4b5c6d7e8f901234567891234567891234567891        refs/tags/version/23.1.12
3a4b5c6d7e8f9012345678912345678912345678912        refs/tags/version/23.1.35
a4b5c6d7e8f90123456789123456789123456789123        refs/tags/version/23.1.22
4b5c6d7e8f901234567891234567891234567891234        refs/tags/version/23.1.0-RC.3
"""


class TestTagOrdering:
    """Tests for ordering a release family of tags."""

    def test_literal_listing_order(self):
        """Multi-segment families first, compared as strings, then the canonical family numerically."""
        expected = [
            "1.5", "1.55", "12.5", "2.5",
            "0-RC.1", "0-RC.2", "0-RC.3", "0-RC.4", "0-RC.11", "0-RC.21", "0-RC.33",
            "0", "1", "2-RC.0", "2", "3", "4", "12", "22", "35",
        ]
        result = ordered_tag_names(RAW_LISTING, "version/23.1.*")
        assert result == [f"version/23.1.{suffix}" for suffix in expected]

    def test_latest_is_last_of_canonical_family(self):
        assert latest_tag(RAW_LISTING, "version/23.1.*") == "version/23.1.35"

    def test_empty_listing(self):
        assert ordered_tag_names("", "version/23.1.*") == []
        assert latest_tag("", "version/23.1.*") is None

    def test_no_matching_tags(self, make_listing):
        listing = make_listing("version/22.4.1", "other/23.1.1")
        assert latest_tag(listing, "version/23.1.*") is None

    def test_release_candidate_before_final(self, make_listing):
        listing = make_listing("version/1.0.1", "version/1.0.1-RC.2", "version/1.0.1-RC.1")
        assert ordered_tag_names(listing, "version/1.0.*") == [
            "version/1.0.1-RC.1",
            "version/1.0.1-RC.2",
            "version/1.0.1",
        ]

    def test_three_families(self, make_listing):
        listing = make_listing("v/1.2.3", "v/2", "v/1.2", "v/1")
        assert ordered_tag_names(listing, "v/*") == ["v/1.2", "v/1.2.3", "v/1", "v/2"]

    def test_peeled_refs_are_ignored(self, make_listing):
        listing = make_listing("version/1.0.1", "version/1.0.1^{}")
        assert ordered_tag_names(listing, "version/1.0.*") == ["version/1.0.1"]

    def test_pattern_without_wildcard_is_rejected(self):
        with pytest.raises(ValueError):
            parse_tag_listing(RAW_LISTING, "version/23.1.")


class TestVersionTag:
    """Tests for parsing a single tag."""

    def test_parse_release_candidate(self):
        tag = VersionTag.parse("version/23.1.0-RC.33", "version/23.1.")
        assert tag.suffix == "0-RC.33"
        assert tag.numbers == (0,)
        assert tag.rc == 33
        assert tag.segment_count == 1

    def test_parse_two_segments(self):
        tag = VersionTag.parse("version/23.1.1.5", "version/23.1.")
        assert tag.segment_count == 2
        assert not tag.is_release_candidate

    def test_parse_rejects_other_prefix(self):
        assert VersionTag.parse("version/FOO", "version/23.1.") is None


class TestHelpers:
    """Tests for release patterns and version comparison."""

    def test_release_branch_pattern(self):
        assert release_tag_pattern("release/22.3") == "version/22.3.*"

    @pytest.mark.parametrize(
        "branch, pattern",
        [("release/22", "version/22.*"), ("release/22.3.1", "version/22.3.1.*"), ("release/acme-7", "version/acme-7.*")],
    )
    def test_any_release_branch_maps_to_its_tags(self, branch, pattern):
        assert release_tag_pattern(branch) == pattern

    @pytest.mark.parametrize("branch", ["master", "customer/acme", "release/", None])
    def test_non_release_branches_have_no_pattern(self, branch):
        assert release_tag_pattern(branch) is None

    def test_parse_version_orders_candidates_first(self):
        assert parse_version("version/22.2.1-RC.3") < parse_version("version/22.2.1")
        assert parse_version("version/22.2.1") < parse_version("version/22.2.2-RC.0")
        assert parse_version("version/22.2.9") < parse_version("version/22.2.10")

    def test_parse_version_rejects_garbage(self):
        assert parse_version("version/FOO") is None

    def test_listing_contains_tag(self, make_listing):
        listing = make_listing("version/22.2.0")
        assert listing_contains_tag(listing, "version/22.2.0")
        assert not listing_contains_tag(listing, "version/22.2.99")
