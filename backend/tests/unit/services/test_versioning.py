"""
Version tracking tests.

WHY: Version labels are shown to customers and recorded in the version
history, so the arithmetic must be exact at the rollover ("0.9" -> "1.0")
and the comment gate must fire before anything is written.
"""

import pytest

from quotedesk.core.exceptions import CommentRequiredError
from quotedesk.services.versioning import bump_version, require_comment, requires_comment


class TestBumpVersion:
    """Tests for bump_version."""

    @pytest.mark.parametrize(
        "current, expected",
        [
            ("0.1", "0.2"),
            ("0.2", "0.3"),
            ("0.9", "1.0"),
            ("1.0", "1.1"),
            ("1.9", "2.0"),
            ("9.9", "10.0"),
            ("2", "2.1"),
        ],
    )
    def test_bump(self, current, expected):
        assert bump_version(current) == expected

    @pytest.mark.parametrize("garbage", [None, "", "v1", "abc", "nan", "inf", "1e308", "-1e308"])
    def test_unparsable_restarts_at_initial(self, garbage):
        assert bump_version(garbage) == "0.1"

    def test_strictly_increasing(self):
        """
        WHY: Floating point drift over many saves must never produce a
        repeated or decreasing label.
        """
        version = "0.1"
        for _ in range(150):
            following = bump_version(version)
            assert float(following) > float(version)
            version = following

        assert version == "15.1"


class TestCommentGate:
    """Tests for require_comment."""

    def test_version_change_without_comment_raises(self):
        with pytest.raises(CommentRequiredError) as exc_info:
            require_comment("0.1", "0.2", None)

        assert exc_info.value.context == {"current_version": "0.1", "next_version": "0.2"}

    def test_blank_comment_counts_as_missing(self):
        with pytest.raises(CommentRequiredError):
            require_comment("0.1", "0.2", "   ")

    def test_comment_is_stripped(self):
        assert require_comment("0.1", "0.2", "  revised discount  ") == "revised discount"

    def test_unchanged_version_needs_no_comment(self):
        assert require_comment("0.3", "0.3", None) is None
        assert requires_comment("0.3", "0.3") is False

    def test_unchanged_version_keeps_optional_comment(self):
        assert require_comment("0.3", "0.3", "status only") == "status only"
