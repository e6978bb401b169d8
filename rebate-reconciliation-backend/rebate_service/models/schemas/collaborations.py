"""
Schemas for records consumed from the upstream collaboration and project APIs.

The upstream speaks camelCase and nests a few fields (talent nickname under
``talentInfo``, receivable under ``metrics``, evidence as
``rebateScreenshots``). ``CollaborationRecord`` flattens those into the shape
the rebate services work with.
"""
from datetime import datetime
from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

from rebate_service.config import UPSTREAM_VOCABULARY
from rebate_service.models.db.enums import CollaborationStatus, TalentSource

# Amounts arrive as numbers, occasionally as strings; keep them raw and let
# the classifier decide what is numeric.
RawAmount = Union[float, str, None]


def normalize_talent_source(value: Any) -> str:
    """Map upstream labels onto TalentSource values. Missing means wild talent."""
    if value is None or value == "":
        return TalentSource.WILD_TALENT.value
    if value in (UPSTREAM_VOCABULARY["wild_talent"], TalentSource.WILD_TALENT.value):
        return TalentSource.WILD_TALENT.value
    if value in (UPSTREAM_VOCABULARY["agency_talent"], TalentSource.AGENCY_TALENT.value):
        return TalentSource.AGENCY_TALENT.value
    return str(value)


def normalize_status(value: Any) -> Optional[str]:
    if value in (UPSTREAM_VOCABULARY["published"], CollaborationStatus.PUBLISHED.value):
        return CollaborationStatus.PUBLISHED.value
    return None if value is None else str(value)


class CollaborationRecord(BaseModel):
    """One upstream collaboration (talent x project engagement)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    project_id: Optional[str] = Field(None, alias="projectId")
    talent_id: Optional[str] = Field(None, alias="talentId")
    talent_name: Optional[str] = Field(None, alias="talentName")
    talent_source: str = Field(TalentSource.WILD_TALENT.value, alias="talentSource")
    status: Optional[str] = None
    publish_date: Optional[str] = Field(None, alias="publishDate")
    rebate_receivable: Optional[float] = Field(None, alias="rebateReceivable")
    actual_rebate: RawAmount = Field(None, alias="actualRebate")
    recovery_date: Optional[str] = Field(None, alias="recoveryDate")
    discrepancy_reason: Optional[str] = Field(None, alias="discrepancyReason")
    discrepancy_reason_updated_at: Optional[datetime] = Field(None, alias="discrepancyReasonUpdatedAt")
    evidence_urls: List[str] = Field(default_factory=list, alias="evidenceUrls")

    @model_validator(mode="before")
    @classmethod
    def _flatten_upstream(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flat = dict(data)
        for key in ("id", "projectId", "talentId"):
            if flat.get(key) is not None:
                flat[key] = str(flat[key])
        talent_info = flat.get("talentInfo") or {}
        if not flat.get("talentName") and not flat.get("talent_name") and isinstance(talent_info, dict):
            flat["talentName"] = talent_info.get("nickname")
        metrics = flat.get("metrics") or {}
        if flat.get("rebateReceivable") is None and flat.get("rebate_receivable") is None and isinstance(metrics, dict):
            flat["rebateReceivable"] = metrics.get("rebateReceivable")
        if "evidenceUrls" not in flat and "evidence_urls" not in flat:
            flat["evidenceUrls"] = flat.get("rebateScreenshots") or []
        if flat.get("evidenceUrls") is None:
            flat["evidenceUrls"] = []
        flat["talentSource"] = normalize_talent_source(flat.pop("talentSource", flat.pop("talent_source", None)))
        flat["status"] = normalize_status(flat.get("status"))
        return flat


class Project(BaseModel):
    """Project lookup entry (display join only)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str

    @model_validator(mode="before")
    @classmethod
    def _stringify_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("id") is not None:
            data = {**data, "id": str(data["id"])}
        return data


# Field names used when patching the upstream record.
UPSTREAM_PATCH_FIELDS = {
    "actual_rebate": "actualRebate",
    "recovery_date": "recoveryDate",
    "discrepancy_reason": "discrepancyReason",
    "evidence_urls": "rebateScreenshots",
}


def to_upstream_patch(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate a service-level patch into the upstream field names."""
    return {UPSTREAM_PATCH_FIELDS.get(k, k): v for k, v in fields.items()}
