"""
Request / response records exchanged with the host transport.

The transport itself is outside this package; it builds these records and
reads the responses.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Statements(BaseModel):
    """Statement templates supplied with a request; may be empty."""

    commands: list[str] = Field(default_factory=list)


class UsernameMetadata(BaseModel):
    """Values available to the username template."""

    display_name: str = ""
    role_name: str = ""


# ---------------------------------------------------------------------------
# Initialize
# ---------------------------------------------------------------------------


class InitializeRequest(BaseModel):
    config: dict[str, Any] = Field(default_factory=dict)
    verify_connection: bool = False


class InitializeResponse(BaseModel):
    config: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# NewUser
# ---------------------------------------------------------------------------


class NewUserRequest(BaseModel):
    username_config: UsernameMetadata = Field(default_factory=UsernameMetadata)
    statements: Statements = Field(default_factory=Statements)
    password: str = ""
    expiration: datetime | None = None


class NewUserResponse(BaseModel):
    username: str


# ---------------------------------------------------------------------------
# UpdateUser
# ---------------------------------------------------------------------------


class ChangePassword(BaseModel):
    new_password: str
    statements: Statements = Field(default_factory=Statements)


class ChangeExpiration(BaseModel):
    new_expiration: datetime
    statements: Statements = Field(default_factory=Statements)


class UpdateUserRequest(BaseModel):
    """At least one of ``password`` / ``expiration`` must be set."""

    username: str
    password: ChangePassword | None = None
    expiration: ChangeExpiration | None = None


class UpdateUserResponse(BaseModel):
    pass


# ---------------------------------------------------------------------------
# DeleteUser
# ---------------------------------------------------------------------------


class DeleteUserRequest(BaseModel):
    username: str
    statements: Statements = Field(default_factory=Statements)


class DeleteUserResponse(BaseModel):
    pass
