"""Page-view statistics entity."""
from typing import Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class StatPage(BaseEntity):
    """One page view; rows are kept for a rolling retention window."""

    __tablename__ = "stat_page"

    kb_id: Mapped[str] = mapped_column(String(64), nullable=False)
    node_id: Mapped[Optional[str]] = mapped_column(String(64))
    session_id: Mapped[Optional[str]] = mapped_column(String(64))
    remote_ip: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_stat_page_created_at", "created_at"),
        Index("ix_stat_page_kb_id", "kb_id"),
    )
