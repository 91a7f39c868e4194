"""
UniHelp Backend — Answer Route Handlers
=========================================

What:  POST /api/v1/questions/{questionId}/answers, plus a self-addressed
       test notification for checking a client's hub connection.

Posting an answer commits it and then pushes a ReceiveNotification frame
to the question owner's live connections (unless the owner answered their
own question). A notification failure never fails the request.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.database import get_db_session
from unihelp.dependencies import get_broadcaster, get_current_user
from unihelp.schemas.common import ErrorResponse
from unihelp.schemas.question import AnswerCreateRequest, AnswerResponse, TestNotificationResponse
from unihelp.security import TokenClaims
from unihelp.services.answer_service import answer_service
from unihelp.services.notification_service import NotificationBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/questions/{question_id}/answers", tags=["Answers"])


@router.post(
    "",
    response_model=AnswerResponse,
    responses={
        400: {"description": "Answer body is required", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Question not found", "model": ErrorResponse},
    },
    summary="Answer a question",
)
async def create_answer(
    question_id: int,
    payload: AnswerCreateRequest,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> AnswerResponse:
    return await answer_service.create_answer(
        db=db,
        broadcaster=broadcaster,
        user_id=current_user.user_id,
        question_id=question_id,
        data=payload,
    )


@router.post(
    "/test-notification",
    response_model=TestNotificationResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Send a test notification to your own connections",
)
async def send_test_notification(
    question_id: int,
    current_user: TokenClaims = Depends(get_current_user),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> TestNotificationResponse:
    logger.info(
        "Test notification requested by user %s (question route %s)",
        current_user.user_id,
        question_id,
    )
    return await answer_service.send_test_notification(
        broadcaster=broadcaster,
        user_id=current_user.user_id,
        username=current_user.username or str(current_user.user_id),
    )
