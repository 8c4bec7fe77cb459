"""SQLModel ORM tables for the command queue store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, LargeBinary, text
from sqlmodel import Field, SQLModel


class CommandRecord(SQLModel, table=True):
    __tablename__ = "commands"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_commands_status_id", "status", "id"),
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    kind: str = Field(index=True)
    command: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    status: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, server_default=text("0")),
    )
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
