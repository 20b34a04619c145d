"""
Quotation version tracking.

WHAT: Version arithmetic and the change-comment gate.

WHY: Every content-changing save moves a quotation from "0.1" to "0.2" and
so on, and every such move must say why. The gate raises before anything is
written, so a save without a comment leaves the database untouched.

HOW: Versions are decimal strings. bump_version adds 0.1 and rounds half-up
to one decimal; input that cannot be parsed or bumped restarts at "0.1".
"""

import math
from typing import Optional

from quotedesk.core.exceptions import CommentRequiredError
from quotedesk.models.quotation import INITIAL_VERSION


def bump_version(version: Optional[str]) -> str:
    """
    Next version after `version`.

    Examples:
        >>> bump_version("0.1")
        '0.2'
        >>> bump_version("0.9")
        '1.0'
        >>> bump_version("garbage")
        '0.1'
    """
    try:
        current = float(version)
    except (TypeError, ValueError):
        return INITIAL_VERSION

    if not math.isfinite(current):
        return INITIAL_VERSION

    # half-up rounding to tenths
    scaled = (current + 0.1) * 10 + 0.5
    if not math.isfinite(scaled):
        return INITIAL_VERSION
    tenths = math.floor(scaled)
    return f"{tenths / 10:.1f}"


def requires_comment(old_version: Optional[str], new_version: Optional[str]) -> bool:
    """True whenever the save moves the version."""
    return new_version != old_version


def require_comment(
    old_version: Optional[str],
    new_version: Optional[str],
    comment: Optional[str],
) -> Optional[str]:
    """
    Enforce the change-comment gate.

    Args:
        old_version: Version before the save
        new_version: Version the save would produce
        comment: Caller-supplied comment

    Returns:
        The stripped comment, or None if no comment is needed and none given

    Raises:
        CommentRequiredError: Version changes and the comment is missing or blank
    """
    cleaned = comment.strip() if comment else ""
    if requires_comment(old_version, new_version) and not cleaned:
        raise CommentRequiredError(
            current_version=old_version,
            next_version=new_version,
        )
    return cleaned or None
