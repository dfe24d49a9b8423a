"""
Task API — User SQLAlchemy Model
=================================

What:  ORM model representing the `users` table.
Why:   Holds the identity the auth core issues tokens for.
Who:   Used by AccountService (register/login/profile) and by the
       authentication dependency when resolving a token's subject.

Table Design Rationale:
    - Integer primary key: immutable once assigned; embedded as the token subject
    - username / email: UNIQUE constraints back the registration conflict check,
      so two racing registrations cannot both succeed
    - password_hash: passlib hash string (algorithm + salt + digest); the raw
      password is never stored and the hash is never serialized
"""

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from taskapi.database import Base, UTCDateTime, utcnow


class User(Base):
    """
    A registered account.

    Lifecycle:
        Created on registration; read on login, profile fetch and every
        authenticated request. Never mutated or deleted by the API.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Login name, unique across all users",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Contact email, unique across all users",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Salted one-way password hash (never the raw password)",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        comment="When the account was registered (UTC)",
    )

    def __repr__(self) -> str:
        # password_hash deliberately omitted
        return f"<User(id={self.id}, username='{self.username}')>"
