"""Central Enum definitions for core domain states.

These replace scattered string literals to ensure consistency across
DB models, schemas, and business logic.
"""
from __future__ import annotations
import enum


class TalentSource(str, enum.Enum):
    WILD_TALENT = "WildTalent"
    AGENCY_TALENT = "AgencyTalent"


class CollaborationStatus(str, enum.Enum):
    # Upstream workflow has many more stages; only this one matters for rebates.
    PUBLISHED = "Published"

# ---------------------- Reconciliation / Recovery Enums --------------------- #

class RecoveryState(str, enum.Enum):
    NOT_RECOVERED = "NotRecovered"
    RECOVERED_MATCHED = "RecoveredMatched"
    RECOVERED_WITH_DISCREPANCY = "RecoveredWithDiscrepancy"


class StatusClass(str, enum.Enum):
    """Status filter values offered to the dashboard."""
    PENDING = "pending"
    RECOVERED = "recovered"
    DISCREPANCY = "discrepancy"


class BatchMode(str, enum.Enum):
    ON = "on"
    OFF = "off"


class ValidationCode(str, enum.Enum):
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REASON = "MISSING_REASON"
    MISSING_EVIDENCE = "MISSING_EVIDENCE"
    EVIDENCE_LIMIT = "EVIDENCE_LIMIT"
    ALREADY_RECOVERED = "ALREADY_RECOVERED"

__all__ = [
    "TalentSource",
    "CollaborationStatus",
    "RecoveryState",
    "StatusClass",
    "BatchMode",
    "ValidationCode",
]
