from __future__ import annotations
"""SQLAlchemy model for publishers (affiliates promoting offers)."""
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .offer_publishers import OfferPublisher
from sqlalchemy.sql import func
from affiliate_dashboard.database import Base
from .enums import PublisherStatus

class Publisher(Base):
    __tablename__ = "publishers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    company: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[PublisherStatus] = mapped_column(Enum(PublisherStatus), default=PublisherStatus.PENDING, index=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())

    agreements: Mapped[list["OfferPublisher"]] = relationship("OfferPublisher", back_populates="publisher")
