"""
UniHelp Backend — Question Service
====================================

What:  Create, list and fetch questions. Questions are append-only: there is
       no update or delete through the API.
Who:   Called by the /questions route handlers.

Fetching one question eagerly loads its answers and every author needed for
the response; answers come back oldest first.
"""

import logging
from typing import List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from unihelp.exceptions import NotFoundError, UnauthenticatedError
from unihelp.models.answer import Answer
from unihelp.models.question import Question
from unihelp.models.user import User
from unihelp.schemas.common import QueryParameters
from unihelp.schemas.question import (
    AnswerResponse,
    QuestionCreateRequest,
    QuestionDetailResponse,
    QuestionResponse,
)

logger = logging.getLogger(__name__)


class QuestionService:

    async def create_question(
        self,
        db: AsyncSession,
        user_id: int,
        data: QuestionCreateRequest,
    ) -> QuestionResponse:
        author = await db.get(User, user_id)
        if author is None:
            raise UnauthenticatedError(context={"user_id": user_id})

        question = Question(title=data.title, body=data.body, user=author)
        db.add(question)
        await db.flush()
        logger.info("Question %s created by user %s", question.id, user_id)

        return QuestionResponse(
            id=question.id,
            title=question.title,
            body=question.body,
            created_at=question.created_at,
            author_username=question.user.username,
        )

    async def list_questions(
        self,
        db: AsyncSession,
        params: QueryParameters,
    ) -> Tuple[List[QuestionResponse], int]:
        """Newest-first page of questions matching the search term, plus the total."""
        filters = []
        if params.search_term:
            term = params.search_term.lower()
            filters.append(
                or_(
                    func.lower(Question.title).contains(term, autoescape=True),
                    func.lower(Question.body).contains(term, autoescape=True),
                )
            )

        total = (
            await db.execute(select(func.count()).select_from(Question).where(*filters))
        ).scalar_one()

        result = await db.execute(
            select(Question)
            .options(joinedload(Question.user))
            .where(*filters)
            .order_by(Question.created_at.desc(), Question.id.desc())
            .offset(params.offset)
            .limit(params.page_size)
        )
        items = [
            QuestionResponse(
                id=q.id,
                title=q.title,
                body=q.body,
                created_at=q.created_at,
                author_username=q.user.username,
            )
            for q in result.scalars().all()
        ]
        return items, total

    async def get_question(self, db: AsyncSession, question_id: int) -> QuestionDetailResponse:
        """
        Raises:
            NotFoundError: no question with this id (→ 404)
        """
        result = await db.execute(
            select(Question)
            .options(
                joinedload(Question.user),
                selectinload(Question.answers).joinedload(Answer.user),
            )
            .where(Question.id == question_id)
            # Re-read answers even if this question is already in the session
            .execution_options(populate_existing=True)
        )
        question = result.scalar_one_or_none()
        if question is None:
            raise NotFoundError(resource="question", resource_id=question_id)

        answers = sorted(question.answers, key=lambda a: (a.created_at, a.id))
        return QuestionDetailResponse(
            id=question.id,
            title=question.title,
            body=question.body,
            created_at=question.created_at,
            author_username=question.user.username,
            answers=[
                AnswerResponse(
                    id=a.id,
                    body=a.body,
                    created_at=a.created_at,
                    author_username=a.user.username,
                )
                for a in answers
            ],
        )


# Module-level singleton
question_service = QuestionService()
