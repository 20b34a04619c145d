"""
Acting identity.

WHY: Services record who did what (version snapshots, decisions,
follow-ups, audit entries) and derive salesperson initials for quotation
numbers. The identity is passed in explicitly as an Actor value instead
of being read from ambient request state.
"""

from dataclasses import dataclass


SYSTEM_ACTOR_NAME = "system"


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation."""

    name: str

    @classmethod
    def system(cls) -> "Actor":
        """Actor for scheduled and command line jobs."""
        return cls(name=SYSTEM_ACTOR_NAME)
