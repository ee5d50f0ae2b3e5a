"""Commission model: shaving raw counts by a per-(offer, publisher) cut.

Every count is keyed by the (offer, publisher) pair it is attributed to, and
is shaved by that pair's agreement only. A platform-wide total is therefore
the sum of the per-publisher totals.

Two aggregation helpers exist and they round differently on purpose:

* `aggregate_shaved_counts` shaves and rounds each (offer, publisher) count, then sums.
  Per-offer numbers shown elsewhere on the dashboard add up to the total.
* `aggregate_shaved_clicks` sums the unrounded shaved values and rounds once.

Downstream displayed numbers depend on both behaviours; keep them separate.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional

from affiliate_dashboard.utils.metrics import as_count, round_half_up, safe_div

# (offer_id, publisher_id)
AgreementKey = tuple[int, int]


@dataclass(frozen=True)
class OfferCount:
    offer_id: int
    publisher_id: int
    raw_count: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.offer_id, self.publisher_id)


@dataclass(frozen=True)
class OfferClickCounts:
    offer_id: int
    publisher_id: int
    unique_count: int
    total_count: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.offer_id, self.publisher_id)


@dataclass(frozen=True)
class ShavedCounts:
    raw_total: int
    shaved_total: int
    weighted_avg_cut: float


@dataclass(frozen=True)
class ShavedClicks:
    raw_unique: int
    net_unique: int
    raw_total: int
    net_total: int


class CutLookup(Mapping[AgreementKey, float]):
    """(offer_id, publisher_id) -> cut percent; a missing agreement means a cut of 0.

    Only pairs with a configured agreement are iterated; indexing any other
    pair returns the default instead of raising.
    """

    def __init__(self, cuts: Optional[Mapping[AgreementKey, Any]] = None, default: float = 0.0):
        self._cuts: dict[AgreementKey, float] = {}
        self._default = float(default)
        for (offer_id, publisher_id), cut in (cuts or {}).items():
            # NULL commission_cut behaves exactly like a missing agreement
            self._cuts[(int(offer_id), int(publisher_id))] = self._default if cut is None else float(cut)

    def __getitem__(self, key: AgreementKey) -> float:
        return self._cuts.get(key, self._default)

    def __iter__(self) -> Iterator[AgreementKey]:
        return iter(self._cuts)

    def __len__(self) -> int:
        return len(self._cuts)

    def __contains__(self, key: object) -> bool:
        return key in self._cuts

    def __repr__(self) -> str:
        return f"CutLookup({self._cuts!r}, default={self._default})"


def _unrounded(raw_count: Any, cut_percent: Optional[float]) -> float:
    cut = float(cut_percent) if cut_percent is not None else 0.0
    return as_count(raw_count) * (1 - cut / 100)


def shave(raw_count: Any, cut_percent: Optional[float] = 0.0) -> int:
    """Commission-adjusted count: round(raw * (1 - cut/100)).

    Missing / negative counts count as 0 and a missing cut as 0. The cut is
    applied as given, without clamping.
    """
    return round_half_up(_unrounded(raw_count, cut_percent))


def aggregate_shaved_counts(items: Iterable[OfferCount], cuts: CutLookup) -> ShavedCounts:
    """Sum raw and shaved counts across (offer, publisher) items, rounding per
    item, plus the count-weighted average cut."""
    raw_total = 0
    shaved_total = 0
    weighted_cut = 0.0
    for item in items:
        raw = as_count(item.raw_count)
        cut = cuts[item.key]
        raw_total += raw
        shaved_total += shave(raw, cut)
        weighted_cut += raw * cut
    return ShavedCounts(
        raw_total=raw_total,
        shaved_total=shaved_total,
        weighted_avg_cut=safe_div(weighted_cut, raw_total),
    )


def aggregate_shaved_clicks(items: Iterable[OfferClickCounts], cuts: CutLookup) -> ShavedClicks:
    """Shave unique and total clicks per item, sum, then round each sum once."""
    raw_unique = 0
    raw_total = 0
    net_unique = 0.0
    net_total = 0.0
    for item in items:
        cut = cuts[item.key]
        raw_unique += as_count(item.unique_count)
        raw_total += as_count(item.total_count)
        net_unique += _unrounded(item.unique_count, cut)
        net_total += _unrounded(item.total_count, cut)
    return ShavedClicks(
        raw_unique=raw_unique,
        net_unique=round_half_up(net_unique),
        raw_total=raw_total,
        net_total=round_half_up(net_total),
    )


__all__ = [
    "OfferCount",
    "OfferClickCounts",
    "ShavedCounts",
    "ShavedClicks",
    "AgreementKey",
    "CutLookup",
    "shave",
    "aggregate_shaved_counts",
    "aggregate_shaved_clicks",
]
