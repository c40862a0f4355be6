"""Pydantic schemas for sign-up, login and session tokens.

Learn: Request schemas validate shape only. Whether an email is taken
or a password matches is the identity service's job.
"""

from pydantic import AliasChoices, BaseModel, Field


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class GoogleLoginRequest(BaseModel):
    """Google ID token from the frontend's Google Identity Services button.

    Accepts either "tokenId" or Google's own "credential" field name.
    """

    token_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("tokenId", "credential", "token_id"),
    )


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
