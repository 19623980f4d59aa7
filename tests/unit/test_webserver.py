"""Tests for the aiohttp webhook and static file front end."""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import Update

from src.webserver import SECRET_HEADER, WebhookServer, generate_webhook_path


def _application() -> MagicMock:
    application = MagicMock()
    application.update_queue.put = AsyncMock()
    return application


def _request(payload=None, headers=None, bad_json: bool = False) -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    if bad_json:
        request.json = AsyncMock(side_effect=ValueError("not json"))
    else:
        request.json = AsyncMock(return_value=payload)
    return request


def test_generate_webhook_path() -> None:
    for _ in range(50):
        assert re.match(r"^/webhook[0-9a-f]{9}$", generate_webhook_path())


class TestRoutes:
    def test_routes_registered(self, tmp_path: Path) -> None:
        server = WebhookServer(_application(), tmp_path, "/webhook123456789")
        app = server.build_app()
        paths = {
            route.resource.canonical
            for route in app.router.routes()
            if route.resource is not None
        }
        assert "/webhook123456789" in paths
        assert "/files" in paths


class TestWebhook:
    @pytest.mark.asyncio
    async def test_update_is_queued(self, tmp_path: Path) -> None:
        application = _application()
        server = WebhookServer(application, tmp_path, "/webhook1", secret_token="s3cret")
        request = _request({"update_id": 7}, headers={SECRET_HEADER: "s3cret"})

        response = await server.handle_webhook(request)

        assert response.status == 200
        application.update_queue.put.assert_awaited_once()
        update = application.update_queue.put.call_args.args[0]
        assert isinstance(update, Update)
        assert update.update_id == 7

    @pytest.mark.asyncio
    async def test_bad_secret_rejected(self, tmp_path: Path) -> None:
        application = _application()
        server = WebhookServer(application, tmp_path, "/webhook1", secret_token="s3cret")

        response = await server.handle_webhook(_request({"update_id": 7}, headers={SECRET_HEADER: "nope"}))

        assert response.status == 403
        application.update_queue.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_secret_rejected(self, tmp_path: Path) -> None:
        server = WebhookServer(_application(), tmp_path, "/webhook1", secret_token="s3cret")
        response = await server.handle_webhook(_request({"update_id": 7}))
        assert response.status == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [[], "x", 7, None])
    async def test_non_object_body(self, tmp_path: Path, payload) -> None:
        application = _application()
        server = WebhookServer(application, tmp_path, "/webhook1")

        response = await server.handle_webhook(_request(payload))

        assert response.status == 400
        application.update_queue.put.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_body(self, tmp_path: Path) -> None:
        application = _application()
        server = WebhookServer(application, tmp_path, "/webhook1")

        response = await server.handle_webhook(_request(bad_json=True))

        assert response.status == 400
        application.update_queue.put.assert_not_awaited()
