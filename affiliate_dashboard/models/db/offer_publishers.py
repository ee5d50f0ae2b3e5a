from __future__ import annotations
"""SQLAlchemy model for the offer x publisher commission agreement.

`commission_cut` is the percentage shaved off raw counts attributed to the
publisher for the offer; NULL (or no row at all) means no shaving.
"""
from typing import TYPE_CHECKING
from sqlalchemy import Integer, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .offers import Offer
    from .publishers import Publisher
from sqlalchemy.sql import func
from affiliate_dashboard.database import Base

class OfferPublisher(Base):
    __tablename__ = "offer_publishers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("offers.id"), nullable=False, index=True)
    publisher_id: Mapped[int] = mapped_column(Integer, ForeignKey("publishers.id"), nullable=False, index=True)
    commission_percent: Mapped[float | None] = mapped_column(Numeric(5, 2), nullable=True)
    commission_cut: Mapped[float | None] = mapped_column(Numeric(5, 2), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())

    offer: Mapped["Offer"] = relationship("Offer", back_populates="agreements")
    publisher: Mapped["Publisher"] = relationship("Publisher", back_populates="agreements")

    __table_args__ = (
        UniqueConstraint("offer_id", "publisher_id", name="unique_offer_publisher"),
    )

# Domain name used by the reporting services.
CommissionAgreement = OfferPublisher
