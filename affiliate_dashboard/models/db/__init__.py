from .publishers import Publisher
from .offers import Offer
from .offer_publishers import OfferPublisher, CommissionAgreement
from .clicks import Click
from .conversions import Conversion
from .enums import PublisherStatus, OfferStatus, ConversionStatus, ReportScope

__all__ = [
    "Publisher",
    "Offer",
    "OfferPublisher",
    "CommissionAgreement",
    "Click",
    "Conversion",
    "PublisherStatus",
    "OfferStatus",
    "ConversionStatus",
    "ReportScope",
]
