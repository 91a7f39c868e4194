"""
UniHelp Backend — Question & Answer Schemas
=============================================

Question titles are 10–250 characters; bodies are required. Answers only
carry a body; the author and timestamp come from the server.
"""

from datetime import datetime
from typing import List

from pydantic import Field

from unihelp.schemas.common import ApiModel


class QuestionCreateRequest(ApiModel):
    title: str = Field(
        min_length=10,
        max_length=250,
        examples=["How do I push notifications to a single user?"],
    )
    body: str = Field(min_length=1, examples=["When one user answers another user's question..."])


class AnswerCreateRequest(ApiModel):
    body: str = Field(min_length=1, examples=["Put each connection in a group named after the user."])


class AnswerResponse(ApiModel):
    id: int
    body: str
    created_at: datetime
    author_username: str


class QuestionResponse(ApiModel):
    """List item: a question with its author's username."""
    id: int
    title: str
    body: str
    created_at: datetime
    author_username: str


class QuestionDetailResponse(QuestionResponse):
    """A question with every answer, oldest answer first."""
    answers: List[AnswerResponse] = Field(default_factory=list)


class TestNotificationResponse(ApiModel):
    """Outcome of a self-addressed test notification."""
    success: bool
    message: str
    target_user: str
    target_group: str
    sent_message: str
    delivered: int = Field(description="Connections that received the message")
