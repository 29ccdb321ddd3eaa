"""SQLAlchemy model for registered browser push endpoints."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class PushSubscriptionRecord(Base):
  """One push endpoint, owned by exactly one user until it is removed."""

  __tablename__ = "web_push_subscriptions"
  # Registration relies on this index to make concurrent inserts of one endpoint collapse to a single row.
  __table_args__ = (Index("ux_web_push_subscriptions_endpoint", "endpoint", unique=True), Index("ix_web_push_subscriptions_owner_created", "owner_id", "created_at"))

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
  endpoint: Mapped[str] = mapped_column(Text, nullable=False)
  p256dh: Mapped[str] = mapped_column(Text, nullable=False)
  auth: Mapped[str] = mapped_column(Text, nullable=False)
  user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
