"""Persisted per-client dashboard preferences (items per page)."""
from __future__ import annotations

from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rebate_service.config import REBATE_SETTINGS
from rebate_service.models.db.preferences import UserPreference
from rebate_service.utils import get_logger

logger = get_logger(__name__)


def clamp_items_per_page(value: int) -> int:
    low = int(REBATE_SETTINGS["min_items_per_page"])
    high = int(REBATE_SETTINGS["max_items_per_page"])
    return min(max(int(value), low), high)


class PreferenceStore:
    """Reads/writes preferences through short-lived SQLAlchemy sessions."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get_items_per_page(self, client_id: str) -> int:
        default = int(REBATE_SETTINGS["default_items_per_page"])
        with self._session_factory() as db:
            pref = db.query(UserPreference).filter(UserPreference.client_id == client_id).one_or_none()
            return pref.items_per_page if pref else default

    def set_items_per_page(self, client_id: str, items_per_page: int) -> int:
        value = clamp_items_per_page(items_per_page)
        with self._session_factory() as db:
            pref = db.query(UserPreference).filter(UserPreference.client_id == client_id).one_or_none()
            if pref is None:
                db.add(UserPreference(client_id=client_id, items_per_page=value))
            else:
                pref.items_per_page = value
            try:
                db.commit()
            except IntegrityError:
                # Concurrent first write for the same client; last writer wins
                db.rollback()
                existing = db.query(UserPreference).filter(UserPreference.client_id == client_id).one()
                existing.items_per_page = value
                db.commit()
        logger.info("Items per page preference saved", client_id=client_id, items_per_page=value)
        return value


__all__ = ["PreferenceStore", "clamp_items_per_page"]
