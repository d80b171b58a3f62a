"""SQLModel tables for the database backend.

Provides ``FileRecord`` (files and directories), ``FileShare`` (path-based
grants) and ``Follow`` (trust relation between users).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, LargeBinary
from sqlmodel import Field, SQLModel


class FileRecord(SQLModel, table=True):
    """A file or directory owned by a user (``lockstep_files``)."""

    __tablename__ = "lockstep_files"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    path: str = Field(index=True, unique=True)
    parent_path: str = Field(default="", index=True)
    name: str = Field(default="")
    owner_id: str = Field(default="", index=True)
    is_directory: bool = Field(default=False)
    content: bytes | None = Field(default=None, sa_type=LargeBinary)
    size_bytes: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class FileShare(SQLModel, table=True):
    """A grant of one permission kind on one path (``lockstep_shares``)."""

    __tablename__ = "lockstep_shares"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    path: str = Field(index=True)
    grantee_id: str = Field(index=True)
    permission: str = Field(default="read")
    granted_by: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class Follow(SQLModel, table=True):
    """Directed follow edge; ``follow()`` writes both directions (``lockstep_follows``)."""

    __tablename__ = "lockstep_follows"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    follower_id: str = Field(index=True)
    followee_id: str = Field(index=True)
