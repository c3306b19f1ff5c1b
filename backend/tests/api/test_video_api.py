"""
End-to-end tests for the /api/video routes using FastAPI's TestClient.

Background tasks (asset generation, video jobs) run before TestClient
returns, so follow-up reads see their results.
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from tests.factories import OWNER_ID, build_project
from video_schemas import ProjectStatus, QualityIssue

HEADERS = {"X-User-Id": OWNER_ID}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def ready_project(store):
    project = build_project(3, scores=[90, 90, 90])
    store.save(project)
    return project


def project_url(project, suffix=""):
    return f"/api/video/projects/{project.id}{suffix}"


class TestProjectLifecycle:
    def test_create_product_project(self, client):
        response = client.post(
            "/api/video/projects/product",
            json={
                "productName": "EcoWater Bottle",
                "productDescription": "A reusable bottle that keeps water cold for 24 hours",
                "benefits": ["Keeps water cold", "Plastic free"],
                "callToAction": "Shop now",
                "duration": 30,
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        project = response.json()["project"]
        assert project["status"] == "draft"
        assert project["ownerId"] == OWNER_ID
        assert [s["type"] for s in project["scenes"]] == ["hook", "benefit", "benefit", "cta"]
        assert project["sceneOrder"] == [s["id"] for s in project["scenes"]]

    def test_create_script_project(self, client):
        response = client.post(
            "/api/video/projects/script",
            json={
                "title": "Launch video",
                "script": "Meet the bottle that keeps up with you.\n\nOrder yours today.",
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert len(response.json()["project"]["scenes"]) == 2

    def test_create_requires_benefits(self, client):
        response = client.post(
            "/api/video/projects/product",
            json={"productName": "Bottle", "productDescription": "A bottle", "benefits": []},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_list_only_own_projects(self, client, store):
        mine = build_project(1)
        theirs = build_project(1, owner_id="user_bob")
        store.save(mine)
        store.save(theirs)

        response = client.get("/api/video/projects", headers=HEADERS)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["projects"]] == [mine.id]

    def test_get_project_includes_history_status(self, client, ready_project):
        response = client.get(project_url(ready_project), headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["project"]["id"] == ready_project.id
        assert body["historyStatus"]["canUndo"] is False

    def test_other_user_forbidden(self, client, ready_project):
        response = client.get(project_url(ready_project), headers={"X-User-Id": "user_bob"})

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "FORBIDDEN"

    def test_missing_user_header_is_anonymous(self, client, store):
        project = build_project(1, owner_id="anonymous")
        store.save(project)
        assert client.get(project_url(project)).status_code == 200

    def test_unknown_project(self, client):
        response = client.get("/api/video/projects/proj_missing", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "PROJECT_NOT_FOUND"

    def test_delete_project(self, client, ready_project):
        response = client.delete(project_url(ready_project), headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["projectId"] == ready_project.id
        assert client.get(project_url(ready_project), headers=HEADERS).status_code == 404


class TestAssetGeneration:
    def test_generate_assets_runs_pipeline(self, client, store):
        project = build_project(2, status=ProjectStatus.DRAFT, with_media=False)
        store.save(project)

        response = client.post(project_url(project, "/generate-assets"), json={"skipMusic": True}, headers=HEADERS)

        assert response.status_code == 202
        assert response.json()["project"]["status"] == "generating"

        generated = client.get(project_url(project), headers=HEADERS).json()["project"]
        assert generated["status"] == "ready"
        assert generated["progress"]["steps"]["music"]["status"] == "skipped"
        assert all(s["background"]["videoUrl"] for s in generated["scenes"])

    def test_generate_assets_conflict_while_generating(self, client, store):
        project = build_project(1, status=ProjectStatus.GENERATING)
        store.save(project)

        response = client.post(project_url(project, "/generate-assets"), headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ALREADY_GENERATING"

    def test_generate_assets_refused_while_rendering(self, client, store):
        project = build_project(1, status=ProjectStatus.RENDERING)
        store.save(project)
        assert client.post(project_url(project, "/generate-assets"), headers=HEADERS).status_code == 400

    def test_reset_status(self, client, store):
        project = build_project(2, status=ProjectStatus.RENDERING)
        project.renderId = "render_stuck"
        project.progress.errors = ["Render stalled"]
        store.save(project)

        response = client.post(project_url(project, "/reset-status"), headers=HEADERS)

        body = response.json()
        assert response.status_code == 200
        assert body["project"]["status"] == "ready"
        assert body["project"]["renderId"] is None
        assert body["project"]["progress"]["errors"] == []
        assert body["message"] == "Status reset from rendering to ready"

    def test_service_status(self, client, fail_providers):
        fail_providers("video")
        services = client.get("/api/video/service-status").json()["services"]

        assert services["video"]["available"] is False
        assert services["image"]["available"] is True
        assert services["image"]["fallback"] == "MockStockImageProvider"


class TestSceneEditing:
    def test_reorder_then_undo_and_redo(self, client, ready_project):
        response = client.patch(
            project_url(ready_project, "/reorder-scenes"),
            json={"sceneOrder": ["scene_c", "scene_a", "scene_b"]},
            headers=HEADERS,
        )
        body = response.json()
        assert response.status_code == 200
        assert body["project"]["sceneOrder"] == ["scene_c", "scene_a", "scene_b"]
        assert body["historyStatus"]["undoAction"] == "Reorder scenes"

        undone = client.post(project_url(ready_project, "/undo"), headers=HEADERS).json()
        assert undone["undoneAction"] == "Reorder scenes"
        assert undone["project"]["sceneOrder"] == ["scene_a", "scene_b", "scene_c"]
        assert undone["historyStatus"]["canRedo"] is True

        redone = client.post(project_url(ready_project, "/redo"), headers=HEADERS).json()
        assert redone["redoneAction"] == "Reorder scenes"
        assert redone["project"]["sceneOrder"] == ["scene_c", "scene_a", "scene_b"]

        history = client.get(project_url(ready_project, "/history"), headers=HEADERS).json()
        assert history["canUndo"] is True
        assert history["canRedo"] is False

    def test_invalid_order_rejected_without_history(self, client, ready_project):
        response = client.patch(
            project_url(ready_project, "/reorder-scenes"),
            json={"sceneOrder": ["scene_a", "scene_b"]},
            headers=HEADERS,
        )
        assert response.status_code == 400

        history = client.get(project_url(ready_project, "/history"), headers=HEADERS).json()
        assert history["canUndo"] is False

    def test_undo_with_empty_history(self, client, ready_project):
        response = client.post(project_url(ready_project, "/undo"), headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "NOTHING_TO_UNDO"

    def test_edit_narration(self, client, ready_project):
        response = client.patch(
            project_url(ready_project, "/scenes/scene_b/narration"),
            json={"narration": "Cold water, all day long."},
            headers=HEADERS,
        )

        scene = response.json()["project"]["scenes"][1]
        assert response.status_code == 200
        assert scene["narration"] == "Cold water, all day long."

    def test_edit_unknown_scene(self, client, ready_project):
        response = client.patch(
            project_url(ready_project, "/scenes/scene_z/narration"),
            json={"narration": "Hello"},
            headers=HEADERS,
        )
        assert response.status_code == 404

    def test_set_media(self, client, ready_project):
        response = client.patch(
            project_url(ready_project, "/scenes/scene_a/set-media"),
            json={"mediaUrl": "https://stock.test/clip.mp4", "mediaType": "video", "source": "pexels"},
            headers=HEADERS,
        )

        background = response.json()["project"]["scenes"][0]["background"]
        assert background["type"] == "video"
        assert background["videoUrl"] == "https://stock.test/clip.mp4"
        assert background["source"] == "pexels"

    def test_regenerate_image(self, client, ready_project):
        response = client.post(
            project_url(ready_project, "/scenes/scene_a/regenerate-image"),
            json={"prompt": "Bottle on a glacier"},
            headers=HEADERS,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["source"] == "ai"
        assert body["project"]["scenes"][0]["background"]["imageUrl"] == body["url"]
        assert body["historyStatus"]["undoAction"] == "Regenerate image"

    def test_regenerate_image_all_providers_down(self, client, ready_project, fail_providers):
        fail_providers("image", "stock")

        response = client.post(
            project_url(ready_project, "/scenes/scene_a/regenerate-image"),
            json={},
            headers=HEADERS,
        )

        assert response.status_code == 502
        saved = client.get(project_url(ready_project), headers=HEADERS).json()["project"]
        assert len(saved["progress"]["serviceFailures"]) == 2

    def test_product_images(self, client, ready_project):
        added = client.post(
            project_url(ready_project, "/product-images"),
            json={"url": "https://assets.test/bottle.png", "name": "Bottle"},
            headers=HEADERS,
        )
        assert added.status_code == 201
        image = added.json()["project"]["assets"]["productImages"][0]
        assert image["isPrimary"] is True

        overlay = client.patch(
            project_url(ready_project, "/scenes/scene_a/product-overlay"),
            json={"enabled": True, "position": {"x": "left", "y": "top"}, "productImageId": image["id"]},
            headers=HEADERS,
        )
        assert overlay.status_code == 200
        scene_assets = overlay.json()["project"]["scenes"][0]["assets"]
        assert scene_assets["useProductOverlay"] is True
        assert scene_assets["productOverlayUrl"] == "https://assets.test/bottle.png"

        removed = client.delete(project_url(ready_project, f"/product-images/{image['id']}"), headers=HEADERS)
        project = removed.json()["project"]
        assert project["assets"]["productImages"] == []
        assert project["scenes"][0]["assets"]["useProductOverlay"] is False

    def test_music_controls(self, client, ready_project):
        regenerated = client.post(
            project_url(ready_project, "/regenerate-music"),
            json={"musicStyle": "upbeat", "mood": "happy"},
            headers=HEADERS,
        ).json()
        assert regenerated["project"]["assets"]["music"]["enabled"] is True
        assert regenerated["url"]

        volume = client.patch(project_url(ready_project, "/music-volume"), json={"volume": 0.4}, headers=HEADERS)
        assert volume.json()["project"]["assets"]["music"]["volume"] == 0.4

        too_loud = client.patch(project_url(ready_project, "/music-volume"), json={"volume": 1.5}, headers=HEADERS)
        assert too_loud.status_code == 400

        removed = client.delete(project_url(ready_project, "/music"), headers=HEADERS)
        assert removed.json()["project"]["assets"]["music"]["enabled"] is False

    def test_regenerate_voiceover(self, client, ready_project):
        response = client.post(
            project_url(ready_project, "/regenerate-voiceover"),
            json={"voiceId": "voice_2"},
            headers=HEADERS,
        )

        body = response.json()
        assert response.status_code == 200
        assert body["project"]["voiceId"] == "voice_2"
        assert body["url"] == body["project"]["assets"]["voiceover"]["fullTrackUrl"]


class TestVideoJobs:
    def test_regenerate_video_flow(self, client, ready_project):
        created = client.post(
            project_url(ready_project, "/scenes/scene_b/regenerate-video"),
            json={"query": "Slow pan across the bottle"},
            headers=HEADERS,
        )
        assert created.status_code == 202
        job_id = created.json()["jobId"]
        assert created.json()["status"] == "pending"

        status = client.get(project_url(ready_project, f"/scenes/scene_b/video-job/{job_id}"), headers=HEADERS).json()
        assert status["job"]["status"] == "succeeded"
        scene = status["project"]["scenes"][1]
        assert scene["background"]["type"] == "video"
        assert scene["background"]["videoUrl"] == status["job"]["videoUrl"]
        assert scene["regenerationCount"] == 1

        # Applied only once
        again = client.get(project_url(ready_project, f"/scenes/scene_b/video-job/{job_id}"), headers=HEADERS).json()
        assert again["project"]["scenes"][1]["regenerationCount"] == 1

        active = client.get(project_url(ready_project, "/scenes/scene_b/active-jobs"), headers=HEADERS).json()
        assert active["jobs"] == []

    def test_failed_job(self, client, ready_project, fail_providers):
        fail_providers("video")
        job_id = client.post(
            project_url(ready_project, "/scenes/scene_a/regenerate-video"), json={}, headers=HEADERS
        ).json()["jobId"]

        status = client.get(project_url(ready_project, f"/scenes/scene_a/video-job/{job_id}"), headers=HEADERS).json()

        assert status["job"]["status"] == "failed"
        assert status["job"]["errorMessage"]
        assert status["project"] is None

    def test_cancel_finished_job_conflicts(self, client, ready_project):
        job_id = client.post(
            project_url(ready_project, "/scenes/scene_a/regenerate-video"), json={}, headers=HEADERS
        ).json()["jobId"]

        response = client.post(project_url(ready_project, f"/scenes/scene_a/video-job/{job_id}/cancel"), headers=HEADERS)

        assert response.status_code == 409

    def test_job_from_other_scene_not_found(self, client, ready_project):
        job_id = client.post(
            project_url(ready_project, "/scenes/scene_a/regenerate-video"), json={}, headers=HEADERS
        ).json()["jobId"]

        response = client.get(project_url(ready_project, f"/scenes/scene_b/video-job/{job_id}"), headers=HEADERS)

        assert response.status_code == 404


class TestQualityGate:
    def test_analyze_quality(self, client, store):
        project = build_project(3)
        store.save(project)

        body = client.post(project_url(project, "/analyze-quality"), headers=HEADERS).json()

        assert len(body["report"]["sceneStatuses"]) == 3
        assert all(s["analysisResult"] is not None for s in body["project"]["scenes"])

    def test_unanalyzed_project_cannot_render(self, client, store):
        project = build_project(2)
        store.save(project)

        body = client.get(project_url(project, "/can-render"), headers=HEADERS).json()

        assert body["allowed"] is False
        assert body["canRender"] is False
        assert "2 scenes not yet analyzed" in body["blockingReasons"]

    def test_review_then_approve_all(self, client, store):
        project = build_project(3, scores=[90, 75, 78])
        store.save(project)

        report = client.get(project_url(project, "/quality-report"), headers=HEADERS).json()["report"]
        assert report["needsReviewCount"] == 2
        assert report["canRender"] is True

        approved = client.post(project_url(project, "/approve-all"), headers=HEADERS).json()
        assert approved["approvedCount"] == 2

        can_render = client.get(project_url(project, "/can-render"), headers=HEADERS).json()
        assert can_render["allowed"] is True
        assert can_render["reason"] == "All quality checks passed"

    def test_reject_and_approve_by_index(self, client, store):
        project = build_project(3, scores=[90, 90, 90])
        project.scenes[1].analysisResult.issues = [
            QualityIssue(severity="major", description=f"Problem {i}") for i in range(3)
        ]
        store.save(project)

        rejected = client.post(
            project_url(project, "/scenes/1/reject"), json={"reason": "Logo is blurry"}, headers=HEADERS
        ).json()
        assert rejected["reason"] == "Logo is blurry"

        blocked = client.get(project_url(project, "/can-render"), headers=HEADERS).json()
        assert blocked["allowed"] is False
        assert "4 major issues (max 3)" in blocked["blockingReasons"]

        client.post(project_url(project, "/scenes/1/approve"), headers=HEADERS)
        assert client.get(project_url(project, "/can-render"), headers=HEADERS).json()["allowed"] is True

    def test_scene_index_out_of_range(self, client, ready_project):
        response = client.post(project_url(ready_project, "/scenes/7/approve"), headers=HEADERS)
        assert response.status_code == 404

    def test_regenerate_rejected_scene_clears_analysis(self, client, ready_project):
        response = client.post(project_url(ready_project, "/scenes/0/regenerate"), json={}, headers=HEADERS)

        scene = response.json()["project"]["scenes"][0]
        assert scene["analysisResult"] is None
        assert scene["regenerationCount"] == 1


class TestRender:
    def test_gate_blocks_render(self, client, store):
        project = build_project(3, scores=[90, 50, 90])
        store.save(project)

        response = client.post(project_url(project, "/render"), json={"force": True}, headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "QUALITY_GATE_BLOCKED"

    def test_force_overrides_low_project_score(self, client, store):
        project = build_project(2, scores=[72, 72])
        for scene in project.scenes:
            scene.userApproved = True
        store.save(project)

        blocked = client.post(project_url(project, "/render"), json={}, headers=HEADERS)
        assert blocked.status_code == 400
        assert blocked.json()["detail"]["details"]["blockingReasons"] == ["Overall score 72 below minimum 75"]

        forced = client.post(project_url(project, "/render"), json={"force": True}, headers=HEADERS)
        assert forced.status_code == 202
        assert forced.json()["project"]["status"] == "rendering"

    def test_render_until_complete(self, client, ready_project):
        started = client.post(project_url(ready_project, "/render"), json={}, headers=HEADERS)
        assert started.status_code == 202
        render_id = started.json()["renderId"]
        assert started.json()["project"]["status"] == "rendering"

        params = {"renderId": render_id}
        progress = []
        for _ in range(4):
            body = client.get(project_url(ready_project, "/render-status"), params=params, headers=HEADERS).json()
            progress.append(body["progress"])
            if body["done"]:
                break

        assert progress == [0.25, 0.5, 0.75, 1.0]
        assert body["outputUrl"].endswith("/out.mp4")
        assert body["project"]["status"] == "complete"

        stored = client.get(project_url(ready_project, "/render-status"), headers=HEADERS).json()
        assert stored["done"] is True
        assert stored["outputUrl"] == body["outputUrl"]

    def test_render_rate_limited(self, client, ready_project, fail_providers):
        render_id = client.post(project_url(ready_project, "/render"), json={}, headers=HEADERS).json()["renderId"]
        fail_providers("render-rate-limit")

        body = client.get(
            project_url(ready_project, "/render-status"), params={"renderId": render_id}, headers=HEADERS
        ).json()

        assert body["success"] is True
        assert body["rateLimited"] is True
        assert body["retryAfter"] == 10

    def test_render_start_failure(self, client, ready_project, fail_providers):
        fail_providers("render")

        response = client.post(project_url(ready_project, "/render"), json={}, headers=HEADERS)

        assert response.status_code == 502
        saved = client.get(project_url(ready_project), headers=HEADERS).json()["project"]
        assert saved["status"] == "ready"
        assert saved["progress"]["serviceFailures"][0]["service"] == "render"

    def test_render_refused_while_rendering(self, client, store):
        project = build_project(1, status=ProjectStatus.RENDERING, scores=[90])
        store.save(project)
        assert client.post(project_url(project, "/render"), json={}, headers=HEADERS).status_code == 400


class TestApiKey:
    def test_missing_key_rejected(self, client, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret-key")

        response = client.get("/api/video/projects", headers=HEADERS)

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "Unauthorized"
        assert body["loginUrl"] == "/api/login"

    def test_valid_key_accepted(self, client, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret-key,other-key")

        response = client.get("/api/video/projects", headers={**HEADERS, "X-API-Key": "other-key"})

        assert response.status_code == 200

    def test_health_is_public(self, client, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret-key")
        assert client.get("/health").status_code == 200
