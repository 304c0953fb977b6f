"""
AdminSetting model.

Key/value business settings edited by admins.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base


class AdminSetting(Base):
    """Single admin setting (string value, parsed by the reader)."""

    __tablename__ = "admin_settings"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    setting_key: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<AdminSetting(key={self.setting_key}, value={self.setting_value})>"
