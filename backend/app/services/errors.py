"""Domain exceptions raised by the gig services.

Routers translate these into HTTP errors; see ``app.utils.errors``.
"""

from __future__ import annotations

from typing import Dict, Optional


class GigValidationError(ValueError):
    """A submitted form failed validation before anything was written."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}


class PartialParticipantError(GigValidationError):
    """A participant row has an organization without a role, or the reverse."""

    def __init__(self, rows: list[int]):
        message = (
            "Each participant needs both an organization and a role "
            f"(incomplete rows: {', '.join(str(i + 1) for i in rows)})"
        )
        super().__init__(message, {"participants": message})
        self.rows = rows


class DuplicateParticipantError(GigValidationError):
    """Two kept participants would share the same organization and role."""

    def __init__(self, pairs: list[tuple[str, str]]):
        message = "Each organization can hold a participant role only once per gig (duplicated: {})".format(
            ", ".join(role for _, role in pairs)
        )
        super().__init__(message, {"participants": message})
        self.pairs = pairs
