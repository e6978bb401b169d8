from .preferences import UserPreference
from .enums import (
    TalentSource,
    CollaborationStatus,
    RecoveryState,
    StatusClass,
    BatchMode,
    ValidationCode,
)

__all__ = [
    "UserPreference",
    "TalentSource",
    "CollaborationStatus",
    "RecoveryState",
    "StatusClass",
    "BatchMode",
    "ValidationCode",
]
