"""
Async HTTP client for the Studio API (/api/video).

Mutations replace the local ProjectState with the project the server
returns and post a destructive notice when they fail. GETs leave state
alone (pollers decide what to keep) and are retried on transport errors.

Example:
    >>> async with StudioClient("http://localhost:8000", api_key="...") as client:
    ...     created = await client.create_product_project({...})
    ...     await client.generate_assets(created.project.id)
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from studio_client.errors import StudioAPIError, UnauthorizedError
from studio_client.notifications import Notifier
from studio_client.state import ProjectState
from video_schemas import (
    ActiveJobsResponse,
    ApproveAllResponse,
    AssetRegenerationResponse,
    CanRenderResponse,
    DeleteProjectResponse,
    HistoryResponse,
    HistoryStatus,
    ProjectListResponse,
    ProjectResponse,
    QualityReportResponse,
    RenderStartResponse,
    RenderStatusResponse,
    SceneReviewResponse,
    ServiceStatusResponse,
    UndoRedoResponse,
    VideoJobCreatedResponse,
    VideoJobStatusResponse,
)

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/video"
DEFAULT_LOGIN_URL = "/api/login"
# Pause between the "session expired" notice and the redirect
LOGIN_REDIRECT_DELAY = 0.5
GET_ATTEMPTS = 3

T = TypeVar("T", bound=BaseModel)
Body = Union[BaseModel, Dict[str, Any], None]
UnauthorizedHook = Callable[[str], Union[None, Awaitable[None]]]


def _body(body: Body) -> Optional[Dict[str, Any]]:
    if body is None:
        return None
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", exclude_none=True)
    return body


class StudioClient:
    """
    Args:
        base_url: API root, e.g. http://localhost:8000
        api_key: Sent as X-API-Key
        user_id: Sent as X-User-Id (project owner)
        state: Local project state to keep in sync
        notifier: Receives failure and completion notices
        on_unauthorized: Called with the login URL after a 401
        transport: httpx transport (ASGITransport/MockTransport in tests)
        sleep: Awaitable sleep, injectable for tests
        retry_wait: Base wait between GET retries (seconds)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_key: Optional[str] = None,
        user_id: Optional[str] = None,
        state: Optional[ProjectState] = None,
        notifier: Optional[Notifier] = None,
        on_unauthorized: Optional[UnauthorizedHook] = None,
        login_url: str = DEFAULT_LOGIN_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        retry_wait: float = 0.5,
        get_attempts: int = GET_ATTEMPTS,
    ):
        headers = {}
        if api_key:
            headers["X-API-Key"] = api_key
        if user_id:
            headers["X-User-Id"] = user_id

        self.state = state or ProjectState()
        self.notifier = notifier or Notifier()
        self.on_unauthorized = on_unauthorized
        self.login_url = login_url
        self.sleep = sleep
        self.retry_wait = retry_wait
        self.get_attempts = get_attempts
        self._http = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "StudioClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ===== Transport =====

    async def _handle_unauthorized(self, response: httpx.Response) -> None:
        error = StudioAPIError.from_response(response)
        login_url = error.payload.get("loginUrl") or self.login_url
        self.notifier.error("Session expired", "Please log in again.")
        logger.warning("studio_unauthorized", path=str(response.request.url.path), login_url=login_url)
        await self.sleep(LOGIN_REDIRECT_DELAY)
        if self.on_unauthorized is not None:
            result = self.on_unauthorized(login_url)
            if inspect.isawaitable(result):
                await result
        raise UnauthorizedError(error.message, {**error.payload, "loginUrl": login_url})

    async def _check(self, response: httpx.Response, failure_title: Optional[str]) -> Dict[str, Any]:
        if response.status_code == 401:
            await self._handle_unauthorized(response)
        if response.is_error:
            error = StudioAPIError.from_response(response)
            logger.warning(
                "studio_request_failed",
                method=response.request.method,
                path=str(response.request.url.path),
                status=error.status,
                error=error.message,
            )
            if failure_title:
                self.notifier.error(failure_title, error.message)
            raise error
        return response.json()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.get_attempts),
                wait=wait_exponential(multiplier=self.retry_wait, max=4),
                retry=retry_if_exception_type(httpx.TransportError),
                sleep=self.sleep,
                reraise=True,
            ):
                with attempt:
                    response = await self._http.get(path, params=params)
        except httpx.TransportError as e:
            logger.warning("studio_get_network_error", path=path, error=str(e))
            raise StudioAPIError(0, f"Network error: {e}") from e
        return await self._check(response, None)

    async def _send(self, method: str, path: str, body: Body, failure_title: str) -> Dict[str, Any]:
        try:
            response = await self._http.request(method, path, json=_body(body))
        except httpx.TransportError as e:
            error = StudioAPIError(0, f"Network error: {e}")
            self.notifier.error(failure_title, error.message)
            raise error from e
        return await self._check(response, failure_title)

    def _apply(self, result: BaseModel) -> None:
        project = getattr(result, "project", None)
        if project is None:
            return
        history = getattr(result, "historyStatus", None)
        self.state.replace(project, history)

    async def _mutate(
        self,
        method: str,
        path: str,
        model: Type[T],
        failure_title: str,
        body: Body = None,
    ) -> T:
        data = await self._send(method, path, body, failure_title)
        result = model.model_validate(data)
        self._apply(result)
        return result

    async def _read(self, path: str, model: Type[T], params: Optional[Dict[str, Any]] = None) -> T:
        return model.model_validate(await self._get(path, params))

    @staticmethod
    def _project_path(project_id: str, suffix: str = "") -> str:
        return f"{API_PREFIX}/projects/{project_id}{suffix}"

    # ===== Projects =====

    async def list_projects(self) -> ProjectListResponse:
        return await self._read(f"{API_PREFIX}/projects", ProjectListResponse)

    async def create_product_project(self, request: Body) -> ProjectResponse:
        return await self._mutate(
            "POST", f"{API_PREFIX}/projects/product", ProjectResponse, "Failed to create project", request
        )

    async def create_script_project(self, request: Body) -> ProjectResponse:
        return await self._mutate(
            "POST", f"{API_PREFIX}/projects/script", ProjectResponse, "Failed to create project", request
        )

    async def load_project(self, project_id: str) -> ProjectResponse:
        """Fetch a project and make it the local state."""
        result = await self._read(self._project_path(project_id), ProjectResponse)
        self._apply(result)
        return result

    async def get_project(self, project_id: str) -> ProjectResponse:
        return await self._read(self._project_path(project_id), ProjectResponse)

    async def delete_project(self, project_id: str) -> DeleteProjectResponse:
        data = await self._send("DELETE", self._project_path(project_id), None, "Failed to delete project")
        if self.state.project_id == project_id:
            self.state.clear()
        return DeleteProjectResponse.model_validate(data)

    async def generate_assets(
        self, project_id: str, skip_music: bool = False, skip_analysis: bool = False
    ) -> ProjectResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, "/generate-assets"),
            ProjectResponse,
            "Failed to start generation",
            {"skipMusic": skip_music, "skipAnalysis": skip_analysis},
        )

    async def reset_status(self, project_id: str) -> ProjectResponse:
        return await self._mutate(
            "POST", self._project_path(project_id, "/reset-status"), ProjectResponse, "Failed to reset status"
        )

    # ===== Scene editing =====

    async def reorder_scenes(self, project_id: str, scene_order: List[str]) -> ProjectResponse:
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, "/reorder-scenes"),
            ProjectResponse,
            "Failed to reorder scenes",
            {"sceneOrder": scene_order},
        )

    async def update_narration(self, project_id: str, scene_id: str, narration: str) -> ProjectResponse:
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, f"/scenes/{scene_id}/narration"),
            ProjectResponse,
            "Failed to update narration",
            {"narration": narration},
        )

    async def update_visual_direction(self, project_id: str, scene_id: str, visual_direction: str) -> ProjectResponse:
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, f"/scenes/{scene_id}/visual-direction"),
            ProjectResponse,
            "Failed to update visual direction",
            {"visualDirection": visual_direction},
        )

    async def set_scene_media(
        self, project_id: str, scene_id: str, media_url: str, media_type: str, source: str
    ) -> ProjectResponse:
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, f"/scenes/{scene_id}/set-media"),
            ProjectResponse,
            "Failed to update scene media",
            {"mediaUrl": media_url, "mediaType": media_type, "source": source},
        )

    async def update_product_overlay(self, project_id: str, scene_id: str, **overlay: Any) -> ProjectResponse:
        """Keyword arguments use the API's field names (enabled, position, scale, animation, productImageId)."""
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, f"/scenes/{scene_id}/product-overlay"),
            ProjectResponse,
            "Failed to update product overlay",
            {k: v for k, v in overlay.items() if v is not None},
        )

    async def regenerate_image(
        self, project_id: str, scene_id: str, prompt: Optional[str] = None
    ) -> AssetRegenerationResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_id}/regenerate-image"),
            AssetRegenerationResponse,
            "Image regeneration failed",
            {"prompt": prompt},
        )

    async def regenerate_voiceover(
        self, project_id: str, voice_id: Optional[str] = None, scene_ids: Optional[List[str]] = None
    ) -> AssetRegenerationResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, "/regenerate-voiceover"),
            AssetRegenerationResponse,
            "Voiceover regeneration failed",
            {"voiceId": voice_id, "sceneIds": scene_ids},
        )

    async def regenerate_music(
        self,
        project_id: str,
        style: Optional[str] = None,
        mood: Optional[str] = None,
        custom_prompt: Optional[str] = None,
    ) -> AssetRegenerationResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, "/regenerate-music"),
            AssetRegenerationResponse,
            "Music regeneration failed",
            {"style": style, "mood": mood, "customPrompt": custom_prompt},
        )

    async def update_music_volume(self, project_id: str, volume: float) -> ProjectResponse:
        return await self._mutate(
            "PATCH",
            self._project_path(project_id, "/music-volume"),
            ProjectResponse,
            "Failed to change music volume",
            {"volume": volume},
        )

    async def remove_music(self, project_id: str) -> ProjectResponse:
        return await self._mutate(
            "DELETE", self._project_path(project_id, "/music"), ProjectResponse, "Failed to remove music"
        )

    async def add_product_image(
        self, project_id: str, url: str, name: str, description: Optional[str] = None, is_primary: bool = False
    ) -> ProjectResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, "/product-images"),
            ProjectResponse,
            "Failed to add product image",
            {"url": url, "name": name, "description": description, "isPrimary": is_primary},
        )

    async def remove_product_image(self, project_id: str, image_id: str) -> ProjectResponse:
        return await self._mutate(
            "DELETE",
            self._project_path(project_id, f"/product-images/{image_id}"),
            ProjectResponse,
            "Failed to remove product image",
        )

    # ===== Video jobs =====

    async def regenerate_video(
        self, project_id: str, scene_id: str, query: Optional[str] = None, provider: Optional[str] = None
    ) -> VideoJobCreatedResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_id}/regenerate-video"),
            VideoJobCreatedResponse,
            "Video regeneration failed",
            {"query": query, "provider": provider},
        )

    async def get_video_job(self, project_id: str, scene_id: str, job_id: str) -> VideoJobStatusResponse:
        return await self._read(
            self._project_path(project_id, f"/scenes/{scene_id}/video-job/{job_id}"), VideoJobStatusResponse
        )

    async def cancel_video_job(self, project_id: str, scene_id: str, job_id: str) -> VideoJobStatusResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_id}/video-job/{job_id}/cancel"),
            VideoJobStatusResponse,
            "Failed to cancel video job",
        )

    async def get_active_jobs(self, project_id: str, scene_id: str) -> ActiveJobsResponse:
        return await self._read(self._project_path(project_id, f"/scenes/{scene_id}/active-jobs"), ActiveJobsResponse)

    # ===== History =====

    async def undo(self, project_id: str) -> UndoRedoResponse:
        return await self._mutate("POST", self._project_path(project_id, "/undo"), UndoRedoResponse, "Undo failed")

    async def redo(self, project_id: str) -> UndoRedoResponse:
        return await self._mutate("POST", self._project_path(project_id, "/redo"), UndoRedoResponse, "Redo failed")

    async def get_history(self, project_id: str) -> HistoryStatus:
        result = await self._read(self._project_path(project_id, "/history"), HistoryResponse)
        status = HistoryStatus(**result.model_dump(exclude={"success"}))
        if self.state.project_id == project_id:
            self.state.set_history_status(status)
        return status

    # ===== Render =====

    async def start_render(self, project_id: str, force: bool = False) -> RenderStartResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, "/render"),
            RenderStartResponse,
            "Failed to start render",
            {"force": force},
        )

    async def get_render_status(
        self, project_id: str, render_id: Optional[str] = None, bucket_name: Optional[str] = None
    ) -> RenderStatusResponse:
        return await self._read(
            self._project_path(project_id, "/render-status"),
            RenderStatusResponse,
            params={"renderId": render_id, "bucketName": bucket_name},
        )

    # ===== Quality gate =====

    async def analyze_quality(self, project_id: str) -> QualityReportResponse:
        return await self._mutate(
            "POST", self._project_path(project_id, "/analyze-quality"), QualityReportResponse, "Quality analysis failed"
        )

    async def get_quality_report(self, project_id: str) -> QualityReportResponse:
        return await self._read(self._project_path(project_id, "/quality-report"), QualityReportResponse)

    async def can_render(self, project_id: str) -> CanRenderResponse:
        return await self._read(self._project_path(project_id, "/can-render"), CanRenderResponse)

    async def approve_scene(self, project_id: str, scene_index: int) -> SceneReviewResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_index}/approve"),
            SceneReviewResponse,
            "Failed to approve scene",
        )

    async def reject_scene(self, project_id: str, scene_index: int, reason: Optional[str] = None) -> SceneReviewResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_index}/reject"),
            SceneReviewResponse,
            "Failed to reject scene",
            {"reason": reason},
        )

    async def regenerate_scene(
        self, project_id: str, scene_index: int, prompt: Optional[str] = None
    ) -> AssetRegenerationResponse:
        return await self._mutate(
            "POST",
            self._project_path(project_id, f"/scenes/{scene_index}/regenerate"),
            AssetRegenerationResponse,
            "Scene regeneration failed",
            {"prompt": prompt},
        )

    async def approve_all(self, project_id: str) -> ApproveAllResponse:
        return await self._mutate(
            "POST", self._project_path(project_id, "/approve-all"), ApproveAllResponse, "Failed to approve scenes"
        )

    async def service_status(self) -> ServiceStatusResponse:
        return await self._read(f"{API_PREFIX}/service-status", ServiceStatusResponse)
