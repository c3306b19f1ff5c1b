"""
Tests for scene-level edits.

Every edit must leave scenes[i].order == i and sceneOrder matching the
scene list.
"""

import pytest

from pipeline.error_handler import (
    ErrorCode,
    ProductImageNotFoundError,
    SceneNotFoundError,
    ValidationError,
)
from studio import scene_graph
from tests.factories import analysis, build_project
from video_schemas import OverlayPosition


def assert_ordered(project):
    assert [s.order for s in project.scenes] == list(range(len(project.scenes)))
    assert project.sceneOrder == [s.id for s in project.scenes]


class TestReorderScenes:
    def test_reorder_applies_permutation(self):
        project = build_project(3)
        scene_graph.reorder_scenes(project, ["scene_c", "scene_a", "scene_b"])

        assert project.sceneOrder == ["scene_c", "scene_a", "scene_b"]
        assert_ordered(project)

    def test_reorder_keeps_total_duration(self):
        project = build_project(3)
        scene_graph.reorder_scenes(project, ["scene_b", "scene_c", "scene_a"])
        assert project.totalDuration == 15.0

    def test_missing_id_rejected(self):
        project = build_project(3)
        with pytest.raises(ValidationError) as exc_info:
            scene_graph.reorder_scenes(project, ["scene_a", "scene_b"])

        error = exc_info.value
        assert error.code == ErrorCode.INVALID_SCENE_ORDER
        assert error.details["missingSceneIds"] == ["scene_c"]
        # Unchanged on failure
        assert project.sceneOrder == ["scene_a", "scene_b", "scene_c"]

    def test_unknown_and_duplicate_ids_reported(self):
        project = build_project(3)
        with pytest.raises(ValidationError) as exc_info:
            scene_graph.reorder_scenes(project, ["scene_a", "scene_a", "scene_b", "scene_x"])

        details = exc_info.value.details
        assert details["unknownSceneIds"] == ["scene_x"]
        assert details["duplicateSceneIds"] == ["scene_a"]
        assert details["missingSceneIds"] == ["scene_c"]


class TestNarrationAndDirection:
    def test_update_narration_strips_text(self):
        project = build_project(2)
        scene = scene_graph.update_narration(project, "scene_b", "  New words.  ")
        assert scene.narration == "New words."

    def test_empty_narration_rejected(self):
        project = build_project(2)
        with pytest.raises(ValidationError):
            scene_graph.update_narration(project, "scene_a", "   ")

    def test_unknown_scene(self):
        project = build_project(2)
        with pytest.raises(SceneNotFoundError):
            scene_graph.update_narration(project, "scene_zz", "Hello")

    def test_visual_direction_may_be_cleared(self):
        project = build_project(1)
        scene = scene_graph.update_visual_direction(project, "scene_a", "")
        assert scene.visualDirection == ""


class TestSetSceneMedia:
    def test_video_clears_image_background(self):
        project = build_project(1, scores=[90])
        scene = scene_graph.set_scene_media(project, "scene_a", "https://cdn.test/clip.mp4", "video", "stock")

        assert scene.background.type == "video"
        assert scene.background.videoUrl == "https://cdn.test/clip.mp4"
        assert scene.background.imageUrl is None
        assert scene.background.prompt == "Visual 0"
        assert scene.assets.backgroundUrl is None
        assert scene.analysisResult is None

    def test_image_sets_background_url(self):
        project = build_project(1)
        scene = scene_graph.set_scene_media(project, "scene_a", "https://cdn.test/pic.jpg", "image", "upload")

        assert scene.background.type == "image"
        assert scene.background.source == "upload"
        assert scene.assets.backgroundUrl == "https://cdn.test/pic.jpg"

    def test_invalid_media_type(self):
        project = build_project(1)
        with pytest.raises(ValidationError):
            scene_graph.set_scene_media(project, "scene_a", "https://cdn.test/a.gif", "gif", "stock")


class TestProductOverlay:
    def test_enable_uses_primary_image(self):
        project = build_project(2)
        scene_graph.add_product_image(project, "https://cdn.test/side.png", "Side")
        primary = scene_graph.add_product_image(project, "https://cdn.test/front.png", "Front", is_primary=True)

        scene = scene_graph.update_product_overlay(
            project, "scene_a", enabled=True, position=OverlayPosition(x="left", y="top"), scale=0.5
        )

        assert scene.assets.useProductOverlay is True
        assert scene.assets.productOverlayUrl == primary.url
        assert scene.assets.assignedProductImageId == primary.id
        assert scene.assets.productOverlayPosition.x == "left"
        assert scene.assets.productOverlayScale == 0.5

    def test_enable_without_images_rejected(self):
        project = build_project(1)
        with pytest.raises(ValidationError):
            scene_graph.update_product_overlay(project, "scene_a", enabled=True)

    def test_unknown_product_image(self):
        project = build_project(1)
        with pytest.raises(ProductImageNotFoundError):
            scene_graph.update_product_overlay(project, "scene_a", enabled=True, product_image_id="img_missing")

    @pytest.mark.parametrize("scale", [0, -0.1, 1.5])
    def test_scale_out_of_range(self, scale):
        project = build_project(1)
        scene_graph.add_product_image(project, "https://cdn.test/front.png", "Front")
        with pytest.raises(ValidationError):
            scene_graph.update_product_overlay(project, "scene_a", enabled=True, scale=scale)


class TestProductImages:
    def test_first_image_becomes_primary(self):
        project = build_project(1)
        image = scene_graph.add_product_image(project, "https://cdn.test/a.png", "A")
        assert image.isPrimary is True

    def test_new_primary_demotes_previous(self):
        project = build_project(1)
        first = scene_graph.add_product_image(project, "https://cdn.test/a.png", "A")
        scene_graph.add_product_image(project, "https://cdn.test/b.png", "B", is_primary=True)

        primaries = [img for img in project.assets.productImages if img.isPrimary]
        assert len(primaries) == 1
        assert primaries[0].id != first.id

    def test_remove_clears_overlays_and_promotes_primary(self):
        project = build_project(2)
        first = scene_graph.add_product_image(project, "https://cdn.test/a.png", "A")
        second = scene_graph.add_product_image(project, "https://cdn.test/b.png", "B")
        scene_graph.update_product_overlay(project, "scene_b", enabled=True, product_image_id=first.id)

        scene_graph.remove_product_image(project, first.id)

        scene = project.find_scene("scene_b")
        assert scene.assets.useProductOverlay is False
        assert scene.assets.productOverlayUrl is None
        assert [img.id for img in project.assets.productImages] == [second.id]
        assert project.assets.productImages[0].isPrimary is True

    def test_remove_unknown_image(self):
        project = build_project(1)
        with pytest.raises(ProductImageNotFoundError):
            scene_graph.remove_product_image(project, "img_nope")


class TestMusic:
    def test_volume_bounds(self):
        project = build_project(1)
        scene_graph.update_music_volume(project, 0.4)
        assert project.assets.music.volume == 0.4

        with pytest.raises(ValidationError):
            scene_graph.update_music_volume(project, 1.2)

    def test_disable_music(self):
        project = build_project(1)
        project.assets.music.url = "https://cdn.test/music.mp3"
        scene_graph.disable_music(project)
        assert project.assets.music.enabled is False
        assert project.assets.music.url is None


def test_get_scene_by_index_bounds():
    project = build_project(2)
    assert scene_graph.get_scene_by_index(project, 1).id == "scene_b"
    with pytest.raises(SceneNotFoundError):
        scene_graph.get_scene_by_index(project, 2)
    with pytest.raises(SceneNotFoundError):
        scene_graph.get_scene_by_index(project, -1)


def test_normalize_order_after_manual_edit():
    project = build_project(3)
    project.scenes.reverse()
    project.scenes[0].analysisResult = analysis(0, 80)
    scene_graph.normalize_order(project)
    assert_ordered(project)
    assert project.sceneOrder[0] == "scene_c"
