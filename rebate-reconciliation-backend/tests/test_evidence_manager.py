import asyncio

import pytest

from rebate_service.exceptions import RebateValidationError, RemoteError
from rebate_service.integrations.base import EvidenceFile
from rebate_service.models.db.enums import ValidationCode
from rebate_service.services.evidence_manager import EvidenceManager


@pytest.fixture()
def manager(source, blobs):
    return EvidenceManager(source, blobs, max_evidence=5)


def _files(*names):
    return [EvidenceFile(filename=n, content=n.encode(), content_type="image/png") for n in names]


def test_urls_follow_caller_order_not_completion_order(source, blobs, manager, session_factory, record_factory):
    source.add(record_factory("1", evidence=["https://blobs.mock/evidence/old.png"]))
    blobs.upload_delays = {"first.png": 0.05, "second.png": 0.01, "third.png": 0.0}
    session = session_factory()

    urls = asyncio.run(manager.add_evidence(session, "1", _files("first.png", "second.png", "third.png")))

    # first finished last
    assert blobs.completed_uploads == ["third.png", "second.png", "first.png"]
    assert [u.rsplit("-", 1)[-1] for u in urls[1:]] == ["first.png", "second.png", "third.png"]
    assert urls[0] == "https://blobs.mock/evidence/old.png"
    assert source.record("1").evidence_urls == urls


def test_evidence_limit(source, manager, session_factory, record_factory):
    source.add(record_factory("1", evidence=[f"https://blobs/{i}.png" for i in range(4)]))
    session = session_factory()
    with pytest.raises(RebateValidationError) as exc:
        asyncio.run(manager.add_evidence(session, "1", _files("a.png", "b.png")))
    assert exc.value.code == ValidationCode.EVIDENCE_LIMIT
    assert source.patch_calls == []

    urls = asyncio.run(manager.add_evidence(session, "1", _files("a.png")))
    assert len(urls) == 5


def test_empty_upload_rejected(source, manager, session_factory, record_factory):
    source.add(record_factory("1"))
    with pytest.raises(RebateValidationError) as exc:
        asyncio.run(manager.add_evidence(session_factory(), "1", []))
    assert exc.value.code == ValidationCode.INVALID_INPUT


def test_failed_upload_writes_nothing_and_cleans_up(source, blobs, manager, session_factory, record_factory):
    source.add(record_factory("1"))
    blobs.fail_upload_names.add("bad.png")
    with pytest.raises(RemoteError):
        asyncio.run(manager.add_evidence(session_factory(), "1", _files("good.png", "bad.png")))
    assert source.patch_calls == []
    assert blobs.blobs == {}
    assert len(blobs.delete_calls) == 1


def test_remove_evidence_by_index(source, blobs, manager, session_factory, record_factory):
    evidence = ["https://blobs/a.png", "https://blobs/b.png", "https://blobs/c.png"]
    source.add(record_factory("1", evidence=evidence))

    urls = asyncio.run(manager.remove_evidence(session_factory(), "1", 1))

    assert urls == ["https://blobs/a.png", "https://blobs/c.png"]
    assert blobs.delete_calls == ["https://blobs/b.png"]
    assert source.record("1").evidence_urls == urls


def test_remove_evidence_not_gated_on_blob_delete(source, blobs, manager, session_factory, record_factory):
    source.add(record_factory("1", evidence=["https://blobs/a.png"]))
    blobs.fail_delete_urls.add("https://blobs/a.png")

    urls = asyncio.run(manager.remove_evidence(session_factory(), "1", 0))

    assert urls == []
    assert source.record("1").evidence_urls == []


@pytest.mark.parametrize("index", [-1, 1, 5])
def test_remove_evidence_index_out_of_range(source, manager, session_factory, record_factory, index):
    source.add(record_factory("1", evidence=["https://blobs/a.png"]))
    with pytest.raises(RebateValidationError) as exc:
        asyncio.run(manager.remove_evidence(session_factory(), "1", index))
    assert exc.value.code == ValidationCode.INVALID_INPUT
    assert source.patch_calls == []
