"""
Tests for the async Studio API client.

Requests go through httpx.ASGITransport straight into the FastAPI app, or
through httpx.MockTransport when a test needs a specific failure.
"""

import httpx
import pytest
import pytest_asyncio

from main import app
from studio_client import LOGIN_REDIRECT_DELAY, StudioAPIError, StudioClient, UnauthorizedError
from tests.factories import OWNER_ID, RecordingSleep, build_project

BASE_URL = "http://studio.test"


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest_asyncio.fixture
async def client(sleep):
    studio = StudioClient(BASE_URL, user_id=OWNER_ID, transport=httpx.ASGITransport(app=app), sleep=sleep)
    yield studio
    await studio.aclose()


def mock_client(handler, sleep, **kwargs):
    return StudioClient(BASE_URL, user_id=OWNER_ID, transport=httpx.MockTransport(handler), sleep=sleep, **kwargs)


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_replaces_local_state(self, client):
        result = await client.create_script_project({
            "title": "Launch video",
            "script": "Meet the bottle.\n\nOrder yours today.",
        })

        assert client.state.project_id == result.project.id
        assert client.state.version == 1
        assert len(client.state.project.scenes) == 2

    @pytest.mark.asyncio
    async def test_edit_updates_history_status(self, client, store):
        project = build_project(3)
        store.save(project)
        await client.load_project(project.id)

        await client.reorder_scenes(project.id, ["scene_b", "scene_a", "scene_c"])

        assert client.state.project.sceneOrder == ["scene_b", "scene_a", "scene_c"]
        assert client.state.history_status.canUndo is True
        assert client.state.history_status.undoAction == "Reorder scenes"

    @pytest.mark.asyncio
    async def test_failed_mutation_notifies(self, client, store):
        project = build_project(3, owner_id="user_bob")
        store.save(project)

        with pytest.raises(StudioAPIError) as exc_info:
            await client.reorder_scenes(project.id, ["scene_b", "scene_a", "scene_c"])

        assert exc_info.value.status == 403
        assert exc_info.value.code == "FORBIDDEN"
        notice = client.notifier.last
        assert notice.title == "Failed to reorder scenes"
        assert notice.variant == "destructive"
        assert client.state.project is None

    @pytest.mark.asyncio
    async def test_validation_error_message(self, client):
        with pytest.raises(StudioAPIError) as exc_info:
            await client.create_product_project({
                "productName": "Bottle",
                "productDescription": "A bottle",
                "benefits": [],
            })

        assert exc_info.value.status == 422
        assert "benefits" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_delete_clears_state(self, client, store):
        project = build_project(1)
        store.save(project)
        await client.load_project(project.id)

        await client.delete_project(project.id)

        assert client.state.project is None


class TestReads:
    @pytest.mark.asyncio
    async def test_get_does_not_touch_state(self, client, store):
        project = build_project(1)
        store.save(project)

        result = await client.get_project(project.id)

        assert result.project.id == project.id
        assert client.state.project is None

    @pytest.mark.asyncio
    async def test_get_failure_is_silent(self, client):
        with pytest.raises(StudioAPIError) as exc_info:
            await client.get_project("proj_missing")

        assert exc_info.value.status == 404
        assert client.notifier.notices == []

    @pytest.mark.asyncio
    async def test_get_retries_transport_errors(self, sleep):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"success": True, "projects": []})

        client = mock_client(handler, sleep)
        result = await client.list_projects()
        await client.aclose()

        assert result.projects == []
        assert len(calls) == 3
        assert len(sleep.calls) == 2

    @pytest.mark.asyncio
    async def test_get_gives_up_with_status_zero(self, sleep):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = mock_client(handler, sleep, get_attempts=2)
        with pytest.raises(StudioAPIError) as exc_info:
            await client.list_projects()
        await client.aclose()

        assert exc_info.value.status == 0
        assert exc_info.value.is_network_error
        assert exc_info.value.is_server_error

    @pytest.mark.asyncio
    async def test_mutation_network_error_not_retried(self, sleep):
        calls = []

        def handler(request):
            calls.append(request.method)
            raise httpx.ConnectError("connection refused", request=request)

        client = mock_client(handler, sleep)
        with pytest.raises(StudioAPIError) as exc_info:
            await client.undo("proj_1")
        await client.aclose()

        assert exc_info.value.status == 0
        assert calls == ["POST"]
        assert client.notifier.last.title == "Undo failed"


class TestUnauthorized:
    @pytest.mark.asyncio
    async def test_401_redirects_to_login(self, sleep, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret-key")
        redirects = []
        client = StudioClient(
            BASE_URL,
            transport=httpx.ASGITransport(app=app),
            sleep=sleep,
            on_unauthorized=redirects.append,
        )

        with pytest.raises(UnauthorizedError) as exc_info:
            await client.list_projects()
        await client.aclose()

        assert exc_info.value.login_url == "/api/login"
        assert redirects == ["/api/login"]
        assert sleep.calls == [LOGIN_REDIRECT_DELAY]
        assert client.notifier.last.title == "Session expired"

    @pytest.mark.asyncio
    async def test_api_key_sent(self, sleep, monkeypatch, store):
        monkeypatch.setenv("API_KEY", "secret-key")
        project = build_project(1)
        store.save(project)

        client = StudioClient(
            BASE_URL,
            api_key="secret-key",
            user_id=OWNER_ID,
            transport=httpx.ASGITransport(app=app),
            sleep=sleep,
        )
        result = await client.list_projects()
        await client.aclose()

        assert [p.id for p in result.projects] == [project.id]

    @pytest.mark.asyncio
    async def test_async_hook_awaited(self, sleep):
        redirects = []

        async def redirect(url):
            redirects.append(url)

        def handler(request):
            return httpx.Response(401, json={"error": "Unauthorized", "message": "Invalid API key", "loginUrl": "/login"})

        client = mock_client(handler, sleep, on_unauthorized=redirect)
        with pytest.raises(UnauthorizedError):
            await client.start_render("proj_1")
        await client.aclose()

        assert redirects == ["/login"]
        # Only the session notice, not a second "render failed" one
        assert [n.title for n in client.notifier.notices] == ["Session expired"]
