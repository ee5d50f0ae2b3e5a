"""Central Enum definitions for the tracking store's domain states."""
from __future__ import annotations
import enum


class PublisherStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OfferStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"


class ConversionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReportScope(str, enum.Enum):
    PUBLISHER = "publisher"
    PLATFORM = "platform"


__all__ = [
    "PublisherStatus",
    "OfferStatus",
    "ConversionStatus",
    "ReportScope",
]
