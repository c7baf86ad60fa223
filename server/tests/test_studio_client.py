"""
Tests for shared.clients.studio_client: client-side validation, request
bodies, and failure normalization.
"""

from __future__ import annotations

import asyncio
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List
from unittest.mock import MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from shared.clients import StudioClient, get_studio_url
from studio import create_app
from studio.api.endpoints import generation
from studio.api.errors import INVALID_API_KEY_MESSAGE
from studio.core.config import Settings
from studio.core.errors import ApiError, ProtocolError, ValidationError
from studio.services.generation_service import GenerationService


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it answered."""

    def __init__(self, response: httpx.Response) -> None:
        self.requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return response

        super().__init__(handler)


def run(coro):
    return asyncio.run(coro)


async def call_generate(transport: httpx.AsyncBaseTransport, prompt: str = "a fox", aspect_ratio: str = "1:1") -> str:
    async with StudioClient(base_url="http://studio.test", transport=transport) as client:
        return await client.generate(prompt, aspect_ratio)


async def call_edit(transport: httpx.AsyncBaseTransport, mask: str = None) -> str:
    async with StudioClient(base_url="http://studio.test", transport=transport) as client:
        return await client.edit("add a hat", "AAAA", "image/png", mask)


# ============================================================================
# TESTS: validation before dispatch
# ============================================================================

class TestValidation:

    @pytest.mark.parametrize("prompt", ["", "   "])
    def test_empty_prompt_sends_nothing(self, prompt: str):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "x"}))
        with pytest.raises(ValidationError, match="Please enter a prompt."):
            run(call_generate(transport, prompt=prompt))
        assert transport.requests == []

    def test_unknown_aspect_ratio_sends_nothing(self):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "x"}))
        with pytest.raises(ValidationError, match="Unsupported aspect ratio"):
            run(call_generate(transport, aspect_ratio="5:4"))
        assert transport.requests == []

    def test_edit_requires_instruction_and_image(self):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "x"}))

        async def scenario():
            async with StudioClient(base_url="http://studio.test", transport=transport) as client:
                with pytest.raises(ValidationError, match="Please enter an edit instruction."):
                    await client.edit("", "AAAA", "image/png")
                with pytest.raises(ValidationError, match="Please upload an image to edit."):
                    await client.edit("add a hat", "", "image/png")

        run(scenario())
        assert transport.requests == []


# ============================================================================
# TESTS: request bodies
# ============================================================================

class TestRequests:

    def test_generate_body(self):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "R0lG"}))
        assert run(call_generate(transport, aspect_ratio="16:9")) == "R0lG"

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/generate"
        assert json.loads(request.content) == {"prompt": "a fox", "aspectRatio": "16:9"}

    def test_edit_without_mask_omits_field(self):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "R0lG"}))
        run(call_edit(transport, mask=None))
        body = json.loads(transport.requests[0].content)
        assert transport.requests[0].url.path == "/api/edit"
        assert body == {"prompt": "add a hat", "imageBase64Data": "AAAA", "mimeType": "image/png"}

    def test_edit_with_mask(self):
        transport = RecordingTransport(httpx.Response(200, json={"imageBase64": "R0lG"}))
        run(call_edit(transport, mask="TUFTSw=="))
        assert json.loads(transport.requests[0].content)["maskBase64Data"] == "TUFTSw=="


# ============================================================================
# TESTS: failures
# ============================================================================

class TestFailures:

    def test_error_body_message_is_kept(self):
        transport = RecordingTransport(httpx.Response(401, json={"error": "The provided API key is not valid."}))
        with pytest.raises(ApiError) as exc_info:
            run(call_generate(transport))
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "The provided API key is not valid."

    def test_error_without_message_field(self):
        transport = RecordingTransport(httpx.Response(503, json={"detail": "down"}))
        with pytest.raises(ApiError) as exc_info:
            run(call_generate(transport))
        assert exc_info.value.message == "Request failed with status 503"

    def test_non_json_error_body(self):
        transport = RecordingTransport(httpx.Response(502, text="<html>Bad Gateway</html>"))
        with pytest.raises(ApiError) as exc_info:
            run(call_generate(transport))
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "An unknown error occurred."

    def test_success_without_image_is_protocol_error(self):
        transport = RecordingTransport(httpx.Response(200, json={"status": "ok"}))
        with pytest.raises(ProtocolError, match="missing imageBase64"):
            run(call_edit(transport))

    def test_success_with_non_json_body(self):
        transport = RecordingTransport(httpx.Response(200, text="ok"))
        with pytest.raises(ProtocolError):
            run(call_generate(transport))

    def test_transport_failure_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError):
            run(call_generate(httpx.MockTransport(handler)))


# ============================================================================
# TESTS: against the real app
# ============================================================================

class TestAgainstApp:

    def test_backend_message_reaches_caller(self, test_settings: Settings, fake_genai_client: MagicMock):
        fake_genai_client.models.generate_images.side_effect = genai_errors.ClientError(
            400,
            {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.", "status": "INVALID_ARGUMENT"}},
        )
        app = create_app(test_settings)
        app.dependency_overrides[generation.get_generation_service] = (
            lambda: GenerationService(client=fake_genai_client, config=test_settings)
        )

        with pytest.raises(ApiError) as exc_info:
            run(call_generate(httpx.ASGITransport(app=app)))
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == INVALID_API_KEY_MESSAGE


def test_get_studio_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("STUDIO_URL", raising=False)
    assert get_studio_url() == "http://localhost:3000"
    monkeypatch.setenv("STUDIO_URL", "http://studio.internal:8080")
    assert get_studio_url() == "http://studio.internal:8080"


def test_client_import_does_not_build_app():
    """Importing the client must not pull in the web app or the model SDK."""
    server_dir = Path(__file__).resolve().parents[1]
    code = (
        "import sys\n"
        "import shared.clients\n"
        "loaded = [m for m in ('studio.main', 'fastapi', 'google.genai') if m in sys.modules]\n"
        "print(','.join(loaded))\n"
    )
    env = {**os.environ, "PYTHONPATH": str(server_dir)}
    result = subprocess.run(
        [sys.executable, "-c", code], capture_output=True, text=True, env=env, cwd=server_dir, check=True
    )
    assert result.stdout.strip() == ""
