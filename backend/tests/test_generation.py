"""
Tests for the image-to-3D generation proxy
"""
import base64
import json

import httpx
import pytest

from quimica.api.routes.generation import get_generation_client
from quimica.core.config import Settings
from quimica.core.errors import GenerationAPIError
from quimica.main import app
from quimica.services.generation_client import (GenerationClient,
                                                parse_data_url,
                                                upload_filename)

PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()


def make_client(handler, **settings) -> GenerationClient:
    settings.setdefault("meshy_api_key", None)
    settings.setdefault("tripo_api_key", None)
    return GenerationClient(
        Settings(secret_key="test-secret-key", **settings),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def provider(client):
    """Route generation calls to a recording mock provider"""
    calls = []
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status_code, body = responses.get(request.url.path, (200, {}))
        return httpx.Response(status_code, json=body)

    app.dependency_overrides[get_generation_client] = lambda: make_client(handler)
    yield calls, responses


def test_parse_data_url():
    mime_type, content = parse_data_url(PNG_DATA_URL)

    assert mime_type == "image/png"
    assert content == b"\x89PNG fake"
    with pytest.raises(ValueError, match="Invalid base64 data URL format"):
        parse_data_url("not-a-data-url")
    with pytest.raises(ValueError, match="Invalid base64 data URL format"):
        parse_data_url("data:image/png;base64,abc")


def test_upload_filename():
    assert upload_filename("image/jpeg") == "upload.jpg"
    assert upload_filename("image/webp") == "upload.webp"
    assert upload_filename("application/octet-stream") == "upload.png"


def test_resolve_key_falls_back_to_settings():
    client = make_client(lambda request: httpx.Response(200), meshy_api_key="msy_server")

    assert client.resolve_key("Meshy", "msy_user") == "msy_user"
    assert client.resolve_key("Meshy", None) == "msy_server"
    with pytest.raises(ValueError, match="apiKey is required"):
        client.resolve_key("Tripo3D", None)


@pytest.mark.asyncio
async def test_meshy_create_request():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(202, json={"result": "task-123"})

    result = await make_client(handler).meshy_create(PNG_DATA_URL, "msy_key")

    assert result == {"task_id": "task-123"}
    assert seen["auth"] == "Bearer msy_key"
    assert seen["path"] == "/openapi/v1/image-to-3d"
    assert seen["body"]["image_url"] == PNG_DATA_URL
    assert seen["body"]["ai_model"] == "meshy-4"
    assert seen["body"]["target_polycount"] == 30000


@pytest.mark.asyncio
async def test_meshy_status_is_normalized():
    def handler(request):
        return httpx.Response(200, json={
            "status": "SUCCEEDED",
            "progress": 100,
            "model_urls": {"glb": "https://assets.meshy.ai/model.glb", "fbx": "x"},
            "thumbnail_url": "",
            "task_error": {"message": ""},
        })

    result = await make_client(handler).meshy_status("task-123", "msy_key")

    assert result == {
        "status": "SUCCEEDED",
        "progress": 100,
        "model_url": "https://assets.meshy.ai/model.glb",
        "thumbnail_url": None,
        "error": None,
    }


@pytest.mark.asyncio
async def test_provider_error_carries_hint():
    def handler(request):
        return httpx.Response(401, text="invalid key")

    with pytest.raises(GenerationAPIError) as exc:
        await make_client(handler).tripo_status("task-1", "bad")

    assert exc.value.status_code == 401
    assert "tsk_" in exc.value.hint
    assert exc.value.to_dict()["error"] == "Tripo3D API error (401): invalid key"


@pytest.mark.asyncio
async def test_tripo_upload_sends_multipart():
    seen = {}

    def handler(request):
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"code": 0, "data": {"image_token": "tok"}})

    result = await make_client(handler).tripo_upload(PNG_DATA_URL, "tsk_key")

    assert result["data"]["image_token"] == "tok"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b'filename="upload.png"' in seen["body"]
    assert b"\x89PNG fake" in seen["body"]


def test_meshy_create_endpoint(client, teacher, provider, auth_headers):
    calls, responses = provider
    responses["/openapi/v1/image-to-3d"] = (202, {"result": "task-9"})

    response = client.post(
        "/api/generation/meshy",
        headers=auth_headers(teacher),
        json={"imageBase64": PNG_DATA_URL, "apiKey": "msy_key"},
    )

    assert response.status_code == 200
    assert response.json() == {"task_id": "task-9"}
    assert calls[0].headers["Authorization"] == "Bearer msy_key"


def test_generation_input_errors(client, teacher, provider, auth_headers):
    headers = auth_headers(teacher)
    calls, _ = provider

    response = client.post("/api/generation/meshy", headers=headers, json={"apiKey": "msy_key"})
    assert response.status_code == 400
    assert response.json() == {"error": "imageBase64 is required"}

    response = client.post("/api/generation/meshy", headers=headers, json={"imageBase64": PNG_DATA_URL})
    assert response.status_code == 400
    assert response.json() == {"error": "apiKey is required"}

    response = client.post("/api/generation/tripo/upload", headers=headers, json={"image_base64": "abc", "api_key": "tsk"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid base64 data URL format"}

    response = client.post("/api/generation/tripo/status", headers=headers, json={"apiKey": "tsk"})
    assert response.json() == {"error": "taskId is required"}
    assert calls == []


def test_provider_status_is_passed_through(client, teacher, provider, auth_headers):
    _, responses = provider
    responses["/openapi/v1/image-to-3d/task-1"] = (401, {"message": "Unauthorized"})

    response = client.post(
        "/api/generation/meshy/status",
        headers=auth_headers(teacher),
        json={"taskId": "task-1", "apiKey": "wrong"},
    )

    assert response.status_code == 401
    assert "msy" in response.json()["hint"]


def test_tripo_task_endpoint(client, teacher, provider, auth_headers):
    calls, responses = provider
    responses["/v2/openapi/task"] = (200, {"code": 0, "data": {"task_id": "t-1"}})

    response = client.post(
        "/api/generation/tripo/task",
        headers=auth_headers(teacher),
        json={"imageToken": "tok", "apiKey": "tsk_key"},
    )

    assert response.json()["data"]["task_id"] == "t-1"
    assert json.loads(calls[0].content)["file"] == {"type": "image", "file_token": "tok"}


def test_students_cannot_generate(client, student, provider, auth_headers):
    response = client.post(
        "/api/generation/meshy",
        headers=auth_headers(student),
        json={"imageBase64": PNG_DATA_URL, "apiKey": "msy_key"},
    )
    assert response.status_code == 403
