"""
UniHelp Backend — Shared FastAPI Dependencies
===============================================

What:  Request-scoped accessors for app-level objects and the bearer-token
       guard used by every protected route.
How:   Settings, the notification broadcaster and the file service live on
       `app.state` (set up in create_app), so tests get an isolated set per
       app instance instead of module globals.

Auth flow:
    Authorization: Bearer <jwt>
        → HTTPBearer (auto_error=False, so a missing header becomes our 401
          with the standard error body rather than FastAPI's 403)
        → decode_access_token (signature + expiry only)
        → TokenClaims with a user id, else UnauthenticatedError
"""

from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from unihelp.config import Settings, get_settings
from unihelp.exceptions import UnauthenticatedError
from unihelp.schemas.common import QueryParameters
from unihelp.security import TokenClaims, decode_access_token
from unihelp.services.file_service import FileService
from unihelp.services.notification_service import NotificationBroadcaster

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_broadcaster(request: Request) -> NotificationBroadcaster:
    return request.app.state.broadcaster


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_query_parameters(
    page_number: Optional[int] = Query(default=None, alias="pageNumber", description="1-based page"),
    page_size: Optional[int] = Query(
        default=None, alias="pageSize", description="Items per page (capped at 50)"
    ),
    search_term: Optional[str] = Query(
        default=None, alias="searchTerm", description="Case-insensitive substring filter"
    ),
    sort_by: Optional[str] = Query(
        default=None, alias="sortBy", description="Only 'newest' (alias 'createdAt') is supported"
    ),
    settings: Settings = Depends(get_app_settings),
) -> QueryParameters:
    """Shared list-query contract for /notes and /questions."""
    return QueryParameters.from_query(
        page_number=page_number,
        page_size=page_size,
        search_term=search_term,
        sort_by=sort_by,
        max_page_size=settings.max_page_size,
        default_page_size=settings.default_page_size,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> TokenClaims:
    """
    Resolve the caller from the bearer token.

    Raises:
        UnauthenticatedError: no token, bad token, or a token without a user id
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError(message="Authentication required.")

    claims = decode_access_token(credentials.credentials, settings)
    if claims.user_id is None:
        raise UnauthenticatedError(message="Token does not identify a user.")
    return claims
