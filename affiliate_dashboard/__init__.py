"""Affiliate dashboard performance engine.

Aggregates click and conversion events into commission-adjusted dashboard
reports for publishers and for the platform as a whole.
"""

__all__: list[str] = []
