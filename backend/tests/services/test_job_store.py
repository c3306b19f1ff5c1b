"""
Tests for video job storage (memory and Redis).
"""

import json

import pytest
from unittest.mock import Mock
from redis.exceptions import ConnectionError as RedisConnectionError

from config import settings
from pipeline.error_handler import ErrorCode, JobNotFoundError, StudioError
from services.job_store import MemoryJobStore, RedisJobStore, get_job_store, reset_job_store
from video_schemas import VideoJob, VideoJobStatus


class FakeRedisClient:
    """Dict-backed stand-in exposing the RedisClient helper methods."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.ttls = {}

    def set_json(self, key, data, ttl=None):
        self.values[key] = json.dumps(data)
        self.ttls[key] = ttl

    def get_json(self, key):
        raw = self.values.get(key)
        return json.loads(raw) if raw is not None else None

    def add_to_index(self, key, member, ttl=None):
        self.sets.setdefault(key, set()).add(member)
        self.ttls[key] = ttl

    def remove_from_index(self, key, member):
        self.sets.get(key, set()).discard(member)

    def index_members(self, key):
        return sorted(self.sets.get(key, set()))


def make_job(job_id, scene_id="scene_a", status=VideoJobStatus.PENDING):
    return VideoJob(
        jobId=job_id,
        projectId="proj_1",
        sceneId=scene_id,
        provider="mock-i2v",
        prompt="Bottle on a beach",
        status=status,
    )


@pytest.fixture(params=["memory", "redis"])
def job_store(request):
    if request.param == "memory":
        return MemoryJobStore()
    return RedisJobStore(client=FakeRedisClient(), ttl=60)


def test_save_and_get(job_store):
    job_store.save(make_job("vjob_1"))
    assert job_store.get("vjob_1").prompt == "Bottle on a beach"


def test_get_unknown(job_store):
    with pytest.raises(JobNotFoundError):
        job_store.get("vjob_missing")


def test_active_for_scene_filters_terminal_jobs(job_store):
    job_store.save(make_job("vjob_1", status=VideoJobStatus.SUCCEEDED))
    job_store.save(make_job("vjob_2", status=VideoJobStatus.RUNNING))
    job_store.save(make_job("vjob_3", scene_id="scene_b"))

    active = job_store.active_for_scene("proj_1", "scene_a")
    assert [job.jobId for job in active] == ["vjob_2"]
    assert len(job_store.list_for_scene("proj_1", "scene_a")) == 2


def test_redis_records_expire_with_ttl():
    client = FakeRedisClient()
    RedisJobStore(client=client, ttl=120).save(make_job("vjob_1"))

    assert client.ttls["video_job:vjob_1"] == 120
    assert client.ttls["video_jobs:proj_1:scene_a"] == 120


def test_redis_expired_jobs_dropped_from_index():
    client = FakeRedisClient()
    store = RedisJobStore(client=client, ttl=60)
    store.save(make_job("vjob_1"))
    del client.values["video_job:vjob_1"]

    assert store.list_for_scene("proj_1", "scene_a") == []
    assert client.index_members("video_jobs:proj_1:scene_a") == []


def test_redis_failure_becomes_studio_error():
    client = Mock()
    client.get_json.side_effect = RedisConnectionError("connection refused")
    store = RedisJobStore(client=client, ttl=60)

    with pytest.raises(StudioError) as exc_info:
        store.get("vjob_1")
    assert exc_info.value.code == ErrorCode.REDIS_CONNECTION_ERROR


def test_factory_selects_memory_backend():
    assert isinstance(get_job_store(), MemoryJobStore)


def test_factory_rejects_unknown_backend(monkeypatch):
    monkeypatch.setattr(settings, "JOB_STORE_BACKEND", "kafka")
    reset_job_store()
    with pytest.raises(ValueError):
        get_job_store()
