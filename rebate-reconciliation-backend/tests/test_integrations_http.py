import asyncio

import pytest
from aiohttp import web

from rebate_service.exceptions import RemoteError
from rebate_service.integrations import collaboration_api
from rebate_service.integrations.base import EvidenceFile
from rebate_service.integrations.blob_store import HttpBlobStore
from rebate_service.integrations.collaboration_api import CollaborationApiClient


async def _serve(routes):
    app = web.Application()
    for method, path, handler in routes:
        app.router.add_route(method, path, handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}"


@pytest.fixture(autouse=True)
def _no_backoff_sleep(monkeypatch):
    monkeypatch.setattr(collaboration_api, "compute_backoff_seconds", lambda attempt: 0)


def test_list_and_patch_round_trip(record_factory):
    seen = {}

    async def collaborations(request):
        seen["params"] = dict(request.query)
        return web.json_response({"data": [record_factory("1"), {"talentInfo": {}}]})

    async def projects(request):
        return web.json_response({"data": [{"id": 1, "name": "Spring Launch"}]})

    async def update(request):
        seen["body"] = await request.json()
        return web.json_response({"data": {}})

    async def scenario():
        runner, base = await _serve([
            ("GET", "/collaborations", collaborations),
            ("GET", "/projects", projects),
            ("PUT", "/update-collaboration", update),
        ])
        client = CollaborationApiClient(base)
        try:
            records = await client.list_collaborations()
            project_list = await client.list_projects()
            await client.patch_collaboration("1", {"actual_rebate": 10.0, "evidence_urls": ["u"]})
            return records, project_list
        finally:
            await client.close()
            await runner.cleanup()

    records, project_list = asyncio.run(scenario())

    # the record without an id is skipped
    assert [r.id for r in records] == ["1"]
    assert seen["params"]["allowGlobal"] == "true"
    assert project_list[0].id == "1"
    assert seen["body"] == {"id": "1", "actualRebate": 10.0, "rebateScreenshots": ["u"]}


def test_reads_retry_server_errors_but_not_client_errors():
    calls = {"list": 0, "one": 0}

    async def collaborations(request):
        if "collaborationId" in request.query:
            calls["one"] += 1
            return web.json_response({"message": "nope"}, status=404)
        calls["list"] += 1
        if calls["list"] < 3:
            return web.json_response({"message": "busy"}, status=503)
        return web.json_response({"data": []})

    async def scenario():
        runner, base = await _serve([("GET", "/collaborations", collaborations)])
        client = CollaborationApiClient(base, max_attempts=3)
        try:
            records = await client.list_collaborations()
            with pytest.raises(RemoteError) as exc:
                await client.get_collaboration("9")
            return records, exc.value
        finally:
            await client.close()
            await runner.cleanup()

    records, error = asyncio.run(scenario())

    assert records == []
    assert calls["list"] == 3
    assert calls["one"] == 1
    assert error.status_code == 404


def test_blob_upload_and_delete():
    seen = {}

    async def upload(request):
        body = await request.json()
        seen["upload"] = body
        return web.json_response({"data": {"url": f"https://cdn/{body['fileName']}"}})

    async def delete(request):
        seen["delete"] = await request.json()
        return web.json_response({"message": "gone"}, status=500)

    async def scenario():
        runner, base = await _serve([("POST", "/upload-file", upload), ("POST", "/delete-file", delete)])
        store = HttpBlobStore(base)
        try:
            url = await store.upload(EvidenceFile("a.png", b"abc", "image/png"))
            with pytest.raises(RemoteError):
                await store.delete(url, "p1")
            return url
        finally:
            await store.close()
            await runner.cleanup()

    url = asyncio.run(scenario())

    assert url == "https://cdn/a.png"
    assert seen["upload"]["fileData"] == "data:image/png;base64,YWJj"
    assert seen["delete"] == {"projectId": "p1", "fileUrl": "https://cdn/a.png"}


def test_non_json_success_body_is_a_remote_error():
    calls = {"list": 0}

    async def collaborations(request):
        calls["list"] += 1
        return web.Response(text="<html>gateway</html>", content_type="text/html")

    async def upload(request):
        return web.Response(text="<html>gateway</html>", content_type="text/html")

    async def scenario():
        runner, base = await _serve([
            ("GET", "/collaborations", collaborations),
            ("POST", "/upload-file", upload),
        ])
        client = CollaborationApiClient(base, max_attempts=3)
        store = HttpBlobStore(base)
        try:
            with pytest.raises(RemoteError) as list_exc:
                await client.list_collaborations()
            with pytest.raises(RemoteError) as upload_exc:
                await store.upload(EvidenceFile("a.png", b"abc", "image/png"))
            return list_exc.value, upload_exc.value
        finally:
            await client.close()
            await store.close()
            await runner.cleanup()

    list_error, upload_error = asyncio.run(scenario())

    assert "invalid JSON" in str(list_error)
    assert "invalid JSON" in str(upload_error)
    assert calls["list"] == 1
