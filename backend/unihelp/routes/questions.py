"""
UniHelp Backend — Question Route Handlers
===========================================

Routes:
    GET  /api/v1/questions         list (pageNumber, pageSize, searchTerm, sortBy)
    GET  /api/v1/questions/{id}    one question with its answers, oldest first
    POST /api/v1/questions         create → 201 + Location
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.database import get_db_session
from unihelp.dependencies import get_current_user, get_query_parameters
from unihelp.schemas.common import ErrorResponse, QueryParameters
from unihelp.schemas.question import (
    QuestionCreateRequest,
    QuestionDetailResponse,
    QuestionResponse,
)
from unihelp.security import TokenClaims
from unihelp.services.question_service import question_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/questions", tags=["Questions"])


@router.get(
    "",
    response_model=List[QuestionResponse],
    responses={400: {"description": "Invalid query parameters", "model": ErrorResponse}},
    summary="List questions, newest first",
    description="Total match count is returned in the `X-Total-Count` header.",
)
async def list_questions(
    response: Response,
    params: QueryParameters = Depends(get_query_parameters),
    db: AsyncSession = Depends(get_db_session),
) -> List[QuestionResponse]:
    items, total = await question_service.list_questions(db=db, params=params)
    response.headers["X-Total-Count"] = str(total)
    return items


@router.get(
    "/{question_id}",
    response_model=QuestionDetailResponse,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="Get a question with all of its answers",
)
async def get_question(
    question_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> QuestionDetailResponse:
    return await question_service.get_question(db=db, question_id=question_id)


@router.post(
    "",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Title must be 10–250 characters; body is required", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Ask a question",
)
async def create_question(
    payload: QuestionCreateRequest,
    response: Response,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> QuestionResponse:
    question = await question_service.create_question(
        db=db, user_id=current_user.user_id, data=payload
    )
    response.headers["Location"] = f"{router.prefix}/{question.id}"
    return question
