"""
Decide how much caution a listener deserves before it is terminated.

Priority is fixed: protected ports first, then infrastructure signatures
(which always require confirmation), then known development servers, and
everything else requires confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass

from .process_classifier_helpers import SAFE_DEV_SERVER_MATCHERS, RecordView, infrastructure
from .process_models import Classification, PortPredicate, ProcessRecord


@dataclass(frozen=True)
class ClassificationVerdict:
    classification: Classification
    reason: str


def explain(record: ProcessRecord, is_port_protected: PortPredicate) -> ClassificationVerdict:
    """Classify *record* and name the rule that decided it."""
    if is_port_protected(record.port):
        return ClassificationVerdict(Classification.PROTECTED, f"port {record.port} is protected")

    view = RecordView.of(record)
    if infrastructure(view):
        return ClassificationVerdict(Classification.NEEDS_CONFIRMATION, "infrastructure service")

    for rule_name, matcher in SAFE_DEV_SERVER_MATCHERS:
        if matcher(view):
            return ClassificationVerdict(Classification.SAFE_DEV_SERVER, rule_name)

    return ClassificationVerdict(Classification.NEEDS_CONFIRMATION, "unrecognised process")


def classify(record: ProcessRecord, is_port_protected: PortPredicate) -> Classification:
    return explain(record, is_port_protected).classification


__all__ = ["ClassificationVerdict", "classify", "explain"]
