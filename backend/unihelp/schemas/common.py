"""
UniHelp Backend — Shared Pydantic Schemas
===========================================

What:  Base model with the API's camelCase wire format, the pagination
       query contract shared by notes and questions, and the error/health
       response shapes.

Wire Format:
    JSON bodies use camelCase (`authorUsername`, `fileUrl`, `createdAt`).
    Input also accepts the snake_case field names so Python clients and
    tests can post either form.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from unihelp.exceptions import ValidationError

SUPPORTED_SORTS = {"newest", "createdAt"}


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase aliases, ORM-readable."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


# ══════════════════════════════════════════════════════════════════════════
# Query Parameter Models
# ══════════════════════════════════════════════════════════════════════════


class QueryParameters(BaseModel):
    """
    Validated paging/filter/sort parameters for list endpoints.

    Parameters:
        page_number: 1-based page. Values below 1 are treated as 1.
        page_size:   Items per page. Clamped into [1, max_page_size];
                     asking for more than the maximum silently returns the
                     maximum.
        search_term: Case-insensitive substring filter (title or content/body).
        sort_by:     Only newest-first ordering exists; `newest` and
                     `createdAt` both select it.

    Built with `from_query()` so clamping always uses the configured limit.
    """

    page_number: int = Field(default=1)
    page_size: int = Field(default=10)
    search_term: Optional[str] = Field(default=None)
    sort_by: str = Field(default="newest")

    @classmethod
    def from_query(
        cls,
        page_number: Optional[int],
        page_size: Optional[int],
        search_term: Optional[str],
        sort_by: Optional[str],
        max_page_size: int = 50,
        default_page_size: int = 10,
    ) -> "QueryParameters":
        if sort_by and sort_by not in SUPPORTED_SORTS:
            raise ValidationError(
                message=(
                    f"Unsupported sortBy '{sort_by}'. "
                    f"Supported: {', '.join(sorted(SUPPORTED_SORTS))}"
                ),
                field="sortBy",
            )

        size = default_page_size if page_size is None else page_size
        size = max(1, min(size, max_page_size))
        page = max(1, page_number or 1)
        term = search_term.strip() if search_term else None

        return cls(
            page_number=page,
            page_size=size,
            search_term=term or None,
            sort_by=sort_by or "newest",
        )

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Response Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "You do not have permission to modify this note.",
            "details": {"resource": "note", "resource_id": "7"},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(ApiModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    active_connections: int = Field(description="Open notification hub connections")
    uptime_seconds: float = Field(description="Seconds since service started")
