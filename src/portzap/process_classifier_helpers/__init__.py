"""Signature tables for process classification."""

from .signatures import (
    DEV_PORT_BAND,
    INFRASTRUCTURE_KEYWORDS,
    SAFE_DEV_SERVER_MATCHERS,
    Matcher,
    RecordView,
    infrastructure,
)

__all__ = [
    "DEV_PORT_BAND",
    "INFRASTRUCTURE_KEYWORDS",
    "Matcher",
    "RecordView",
    "SAFE_DEV_SERVER_MATCHERS",
    "infrastructure",
]
