"""Unit tests for the function-style entry point."""

import asyncio
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from artwork_pipeline import handler
from artwork_pipeline.errors import TransientInfraError


@pytest.fixture
def installed_app(app):
    handler.set_application(app)
    yield app
    handler.set_application(None)


def _context(remaining_ms: int = 30_000):
    context = MagicMock()
    context.get_remaining_time_in_millis.return_value = remaining_ms
    return context


def _s3_event(bucket: str, key: str) -> dict:
    return {
        "Records": [
            {
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": bucket}, "object": {"key": key, "size": 10}},
            }
        ]
    }


def test_success(installed_app, config, storage, make_image):
    storage.seed(config.raw_images_bucket, "userA/art1/img1/photo.png", make_image(60, 40))

    response = handler.lambda_handler(
        _s3_event(config.raw_images_bucket, "userA/art1/img1/photo.png"), _context()
    )

    assert response["statusCode"] == 200
    assert response["results"][0]["statusCode"] == 200
    assert storage.object(config.thumbs_bucket, "userA/art1/img1/photo.jpg") is not None


def test_permanent_failure_reported(installed_app, config):
    response = handler.lambda_handler(_s3_event(config.raw_images_bucket, "bad-key"), _context())

    assert response["statusCode"] == 400
    assert response["results"][0]["error"]["code"] == "malformed_key"


def test_retriable_failure_raises(installed_app, config, storage, monkeypatch):
    async def failing_get(bucket, key):
        raise TransientInfraError("S3 unavailable")

    monkeypatch.setattr(storage, "get", failing_get)

    with pytest.raises(TransientInfraError):
        handler.lambda_handler(
            _s3_event(config.raw_images_bucket, "userA/art1/img1/photo.png"), _context()
        )


def test_unrecognised_event(installed_app):
    response = handler.lambda_handler({"hello": "world"}, _context())
    assert response["statusCode"] == 400
    assert response["error"]["code"] == "invalid_event"


def test_s3_test_event(installed_app):
    response = handler.lambda_handler({"Event": "s3:TestEvent"}, _context())
    assert response == {"statusCode": 200, "results": []}


class TestTimeBudget:
    def test_uses_remaining_time(self):
        assert handler._time_budget(_context(10_000), 60.0) == pytest.approx(9.0)

    def test_capped_by_default(self):
        assert handler._time_budget(_context(600_000), 60.0) == 60.0

    def test_never_below_floor(self):
        assert handler._time_budget(_context(500), 60.0) == pytest.approx(0.1)

    def test_without_context(self):
        assert handler._time_budget(None, 42.0) == 42.0


def test_records_share_remaining_time(installed_app, config, monkeypatch):
    async def slow_run(event, key):
        await asyncio.sleep(0.8)
        return SimpleNamespace(uploaded=[])

    monkeypatch.setattr(installed_app.creation, "run", slow_run)
    event = _s3_event(config.raw_images_bucket, "userA/art1/img1/photo.png")
    event["Records"] = event["Records"] * 2
    started = time.monotonic()

    with pytest.raises(TransientInfraError) as exc_info:
        handler.lambda_handler(event, _context(2_000))

    # One second of budget: the second record is cut off, not run to completion.
    assert time.monotonic() - started < 1.5
    statuses = [r["statusCode"] for r in exc_info.value.context["results"]]
    assert statuses == [200, 504]
