"""Core application configuration & rebate governance rules.

Business rules that may evolve (evidence limits, page sizes, batch
concurrency, upstream endpoints and timeouts) are centralized here so they can
be adjusted without diving into service logic. Values are module constants,
overridable via environment variables; tests monkeypatch the dicts directly.

The reconciliation tolerance is a fixed constant outside the tunable dicts.
"""
from __future__ import annotations

import os
from typing import Final

# Settlement tolerance: |actual - receivable| <= this is a match.
RECOVERY_TOLERANCE: Final[float] = 0.01

# Shared across mock integrations (probability of simulated failure)
MOCK_FAILURE_RATE: float = float(os.getenv("MOCK_FAILURE_RATE", "0.0"))

# "http" talks to the real upstream APIs, "mock" uses in-memory stores.
INTEGRATIONS_MODE: str = os.getenv("INTEGRATIONS_MODE", "http").strip().lower()

# ------------------------------ Rebate Rules ------------------------------ #
REBATE_SETTINGS: dict[str, int | str] = {
	"max_evidence": 5,                # Screenshots per task
	"default_items_per_page": int(os.getenv("DEFAULT_ITEMS_PER_PAGE", "15")),
	"min_items_per_page": 1,
	"max_items_per_page": 200,
	"default_status_filter": "pending",
}

# Upstream record vocabulary. The upstream stores display labels; override to
# match the deployment's data language.
UPSTREAM_VOCABULARY: dict[str, str] = {
	"wild_talent": os.getenv("UPSTREAM_WILD_TALENT_LABEL", "WildTalent"),
	"agency_talent": os.getenv("UPSTREAM_AGENCY_TALENT_LABEL", "AgencyTalent"),
	"published": os.getenv("UPSTREAM_PUBLISHED_LABEL", "Published"),
	"unknown_project": "Unknown project",
	"unknown_talent": "Unknown talent",
}

# ---------------------------------- Batch --------------------------------- #
BATCH_SETTINGS: dict[str, int] = {
	"max_concurrency": int(os.getenv("BATCH_MAX_CONCURRENCY", "5")),
}

# -------------------------------- Upstream -------------------------------- #
UPSTREAM_SETTINGS: dict[str, str | float | int] = {
	"collaboration_api_base_url": os.getenv("COLLABORATION_API_BASE_URL", "http://localhost:3000/api"),
	"blob_api_base_url": os.getenv("BLOB_API_BASE_URL", "http://localhost:3000/api"),
	"request_timeout_seconds": float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "15")),
	"upload_timeout_seconds": float(os.getenv("UPSTREAM_UPLOAD_TIMEOUT_SECONDS", "60")),
	"list_limit": 9999,
}

# --------------------------------- Backoff -------------------------------- #
BACKOFF_POLICY: dict[str, int | float] = {
	"base_seconds": 1,
	"factor": 2,          # Exponential factor
	"max_seconds": 10,
	"max_attempts": 3,    # Idempotent reads only
	"jitter_pct": 0.10,   # +/-10% jitter
}

# ----------------------------------- API ---------------------------------- #
API_SETTINGS: dict[str, str | int] = {
	"client_id_header": "X-Client-ID",
	"default_client_id": "anonymous",
	"max_sessions": int(os.getenv("MAX_CLIENT_SESSIONS", "256")),  # Least recently used sessions are evicted past this
}

__all__ = [
	"RECOVERY_TOLERANCE",
	"MOCK_FAILURE_RATE",
	"INTEGRATIONS_MODE",
	# Rule groups
	"REBATE_SETTINGS",
	"UPSTREAM_VOCABULARY",
	"BATCH_SETTINGS",
	"UPSTREAM_SETTINGS",
	"BACKOFF_POLICY",
	"API_SETTINGS",
]
