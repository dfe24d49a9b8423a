"""
Task API — Task SQLAlchemy Model
=================================

What:  ORM model representing the `tasks` table.
Who:   Used by TaskService; every query on it is scoped by user_id or followed
       by an ownership check.

Table Design Rationale:
    - user_id: owner reference, set once at creation and never reassigned
    - idx_tasks_user_id: the list endpoint always filters by owner
    - created_at / updated_at: aware UTC; updated_at >= created_at and it
      strictly advances on every mutation (enforced in TaskService)
"""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from taskapi.database import Base, UTCDateTime, utcnow


class Task(Base):
    """
    A single to-do item owned by exactly one user.

    Lifecycle:
        Created, read, updated and deleted only by its owner.
        Deletion is a hard delete; there is no tombstone.
    """

    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner reference, fixed at creation",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_tasks_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Task(id={self.id}, user_id={self.user_id}, "
            f"completed={self.completed})>"
        )
