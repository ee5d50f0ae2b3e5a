from __future__ import annotations
"""SQLAlchemy model for advertiser offers. The engine only reads `name` to label rows."""
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Numeric, Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .offer_publishers import OfferPublisher
from sqlalchemy.sql import func
from affiliate_dashboard.database import Base
from .enums import OfferStatus

class Offer(Base):
    __tablename__ = "offers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    offer_url: Mapped[str | None] = mapped_column(String, nullable=True)
    geo: Mapped[str | None] = mapped_column(String, nullable=True)
    payout: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    status: Mapped[OfferStatus] = mapped_column(Enum(OfferStatus), default=OfferStatus.ACTIVE, index=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())

    agreements: Mapped[list["OfferPublisher"]] = relationship("OfferPublisher", back_populates="offer")
