"""SQLAlchemy models for platform users."""

from __future__ import annotations

import uuid

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base

GLOBAL_ROLE_SUPERADMIN = "superadmin"


class User(Base):
    """A platform account.

    Superadmin is a global flag on the user rather than a per-community role.
    """

    __tablename__ = "user_account"

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    # NULL for ordinary users; "superadmin" grants platform-wide rights.
    global_role: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_superadmin(self) -> bool:
        """Return True when the user holds the global superadmin role."""
        return self.global_role == GLOBAL_ROLE_SUPERADMIN
