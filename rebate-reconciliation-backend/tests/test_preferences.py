from rebate_service.config import REBATE_SETTINGS
from rebate_service.models.db import UserPreference
from rebate_service.services.preferences import PreferenceStore, clamp_items_per_page


def test_default_when_nothing_stored(preferences):
    assert preferences.get_items_per_page("fresh") == REBATE_SETTINGS["default_items_per_page"]


def test_set_and_read_back(preferences, db_session):
    assert preferences.set_items_per_page("alice", 30) == 30
    assert preferences.set_items_per_page("alice", 50) == 50
    assert preferences.get_items_per_page("alice") == 50
    assert db_session.query(UserPreference).filter_by(client_id="alice").count() == 1


def test_values_are_clamped(preferences):
    assert clamp_items_per_page(0) == 1
    assert clamp_items_per_page(10_000) == 200
    assert preferences.set_items_per_page("bob", 999) == 200


def test_preference_survives_new_store(preferences):
    factory = preferences._session_factory
    PreferenceStore(factory).set_items_per_page("carol", 25)
    assert PreferenceStore(factory).get_items_per_page("carol") == 25
