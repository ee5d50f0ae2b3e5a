"""
SQLAlchemy model for advertiser-confirmed conversions.

`commission_amount` is computed when the conversion is recorded and is never
shaved by the reporting engine.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, Index
from sqlalchemy.sql import func
from affiliate_dashboard.database import Base
from .enums import ConversionStatus

class Conversion(Base):
    __tablename__ = "conversions"

    id = Column(Integer, primary_key=True, index=True)
    click_id = Column(String, ForeignKey("clicks.click_id"), nullable=True)

    offer_id = Column(Integer, ForeignKey("offers.id"), nullable=False)
    publisher_id = Column(Integer, ForeignKey("publishers.id"), nullable=False)

    amount = Column(Numeric(10, 2), default=0.00)
    commission_amount = Column(Numeric(10, 2), default=0.00)
    status = Column(Enum(ConversionStatus), default=ConversionStatus.PENDING, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_conversions_publisher_created", "publisher_id", "created_at"),
    )
