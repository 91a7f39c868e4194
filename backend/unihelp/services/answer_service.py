"""
UniHelp Backend — Answer Service (Persist, then Notify)
=========================================================

What:  Persists an answer and tells the question's owner about it in real time.
Why:   The notification is the only cross-user side effect in the system, so
       its ordering and failure rules live in one place.
How:

    ┌──────────────┐   ┌──────────────┐   ┌──────────┐   ┌────────────────────┐
    │ load question│──▶│ add answer   │──▶│  commit  │──▶│ publish to owner   │
    │ (404 if none)│   │ (caller=auth)│   │          │   │ (only if author≠   │
    └──────────────┘   └──────────────┘   └──────────┘   │  owner; best effort)│
                                                          └────────────────────┘

    The commit happens before the publish: a notification can never announce
    an answer that was rolled back, and a failed publish never undoes the
    answer. Delivery errors are logged and swallowed.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp.exceptions import NotFoundError, UnauthenticatedError
from unihelp.models.answer import Answer
from unihelp.models.question import Question
from unihelp.models.user import User
from unihelp.schemas.question import AnswerCreateRequest, AnswerResponse, TestNotificationResponse
from unihelp.services.notification_service import NotificationBroadcaster, group_name

logger = logging.getLogger(__name__)


def answer_notification_message(answerer: str, question_title: str) -> str:
    return f"{answerer} answered your question '{question_title}'."


class AnswerService:

    async def create_answer(
        self,
        db: AsyncSession,
        broadcaster: NotificationBroadcaster,
        user_id: int,
        question_id: int,
        data: AnswerCreateRequest,
    ) -> AnswerResponse:
        """
        Store an answer by `user_id` on `question_id` and notify the owner.

        Raises:
            NotFoundError:         question absent (→ 404)
            UnauthenticatedError:  token refers to a user that no longer exists
        """
        question = await db.get(Question, question_id)
        if question is None:
            raise NotFoundError(resource="question", resource_id=question_id)

        author = await db.get(User, user_id)
        if author is None:
            raise UnauthenticatedError()

        answer = Answer(body=data.body, question_id=question.id, user_id=author.id)
        db.add(answer)
        await db.flush()
        await db.commit()
        logger.info("Answer %s stored on question %s by user %s", answer.id, question.id, author.id)

        if author.id != question.user_id:
            message = answer_notification_message(author.username, question.title)
            try:
                await broadcaster.publish(question.user_id, message)
            except Exception as e:
                logger.error(
                    "Notification to %s for answer %s failed: %s",
                    group_name(question.user_id),
                    answer.id,
                    str(e),
                    exc_info=True,
                )

        return AnswerResponse(
            id=answer.id,
            body=answer.body,
            created_at=answer.created_at,
            author_username=author.username,
        )

    async def send_test_notification(
        self,
        broadcaster: NotificationBroadcaster,
        user_id: int,
        username: str,
    ) -> TestNotificationResponse:
        """Publish a message to the caller's own group and report the outcome."""
        group = group_name(user_id)
        message = f"Test notification for {username}."
        try:
            delivered = await broadcaster.publish(user_id, message)
        except Exception as e:
            logger.error("Test notification to %s failed: %s", group, str(e), exc_info=True)
            return TestNotificationResponse(
                success=False,
                message=f"Failed to send test notification: {e}",
                target_user=username,
                target_group=group,
                sent_message=message,
                delivered=0,
            )

        return TestNotificationResponse(
            success=True,
            message="Test notification sent successfully!",
            target_user=username,
            target_group=group,
            sent_message=message,
            delivered=delivered,
        )


# Module-level singleton
answer_service = AnswerService()
