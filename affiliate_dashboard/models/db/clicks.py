"""
SQLAlchemy model for tracked clicks. Timestamps are naive UTC.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from affiliate_dashboard.database import Base

class Click(Base):
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, index=True)
    click_id = Column(String, unique=True, nullable=False)

    publisher_id = Column(Integer, ForeignKey("publishers.id"), nullable=False)
    offer_id = Column(Integer, ForeignKey("offers.id"), nullable=False)
    link_id = Column(String, nullable=True)

    geo = Column(String(8), nullable=True)
    device = Column(String, nullable=True)
    browser = Column(String, nullable=True)

    # First attributable click for this visitor + offer
    is_unique = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_clicks_publisher_timestamp", "publisher_id", "timestamp"),
        Index("ix_clicks_offer_timestamp", "offer_id", "timestamp"),
    )
