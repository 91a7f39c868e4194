"""
UniHelp Backend — Auth Request/Response Schemas
=================================================

Register input rules:
    username  3–50 chars
    email     valid address (email-validator), max 100 chars
    password  6–50 chars

The user response deliberately has no hash or salt fields.
"""

from pydantic import EmailStr, Field, field_validator

from unihelp.schemas.common import ApiModel


class UserRegisterRequest(ApiModel):
    username: str = Field(min_length=3, max_length=50, examples=["mislina"])
    email: EmailStr = Field(examples=["mislina@test.com"])
    password: str = Field(min_length=6, max_length=50, examples=["password123"])

    @field_validator("email")
    @classmethod
    def validate_email_length(cls, v: str) -> str:
        if len(v) > 100:
            raise ValueError("Email must be at most 100 characters")
        return v


class UserLoginRequest(ApiModel):
    username: str = Field(min_length=1, examples=["mislina"])
    password: str = Field(min_length=1, examples=["password123"])


class UserResponse(ApiModel):
    """Created/registered user as returned to clients."""
    id: int
    username: str
    email: str


class TokenResponse(ApiModel):
    """Issued identity token; send it back as `Authorization: Bearer <token>`."""
    token: str
