"""
Proxy routes for image-to-3D generation (Meshy.ai and Tripo3D)

Provider keys never reach the browser: the request carries the user's key,
or the server key from settings is used.
"""
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from quimica.core.auth import require_permission
from quimica.core.errors import GenerationAPIError
from quimica.core.logging_config import LoggingConfig
from quimica.core.permissions import Permission
from quimica.models.user import User
from quimica.services.generation_client import GenerationClient

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/generation", tags=["generation"])


def get_generation_client() -> GenerationClient:
    return GenerationClient()


class ImageRequest(BaseModel):
    image_base64: Optional[str] = Field(None, validation_alias=AliasChoices("image_base64", "imageBase64"))
    api_key: Optional[str] = Field(None, validation_alias=AliasChoices("api_key", "apiKey"))


class TaskRequest(BaseModel):
    task_id: Optional[str] = Field(None, validation_alias=AliasChoices("task_id", "taskId"))
    api_key: Optional[str] = Field(None, validation_alias=AliasChoices("api_key", "apiKey"))


class TripoTaskRequest(BaseModel):
    image_token: Optional[str] = Field(None, validation_alias=AliasChoices("image_token", "imageToken"))
    api_key: Optional[str] = Field(None, validation_alias=AliasChoices("api_key", "apiKey"))


def _error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _proxy(operation: str, call: Callable[[], Awaitable]):
    """
    Run a provider call and map its failures to JSON error responses

    ValueError -> 400, provider error -> the provider's status, anything
    else -> 500.
    """
    try:
        return await call()
    except ValueError as e:
        return _error(str(e))
    except GenerationAPIError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    except Exception as e:
        logger.error(f"Generation {operation} failed: {e}", exc_info=True)
        return _error(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post("/meshy")
async def meshy_create(
    request: ImageRequest,
    user: User = Depends(require_permission(Permission.MODEL_GENERATE)),
    client: GenerationClient = Depends(get_generation_client)
):
    """Start a Meshy image-to-3D task"""
    if not request.image_base64:
        return _error("imageBase64 is required")
    return await _proxy("meshy create", lambda: client.meshy_create(request.image_base64, request.api_key))


@router.post("/meshy/status")
async def meshy_status(
    request: TaskRequest,
    user: User = Depends(require_permission(Permission.MODEL_GENERATE)),
    client: GenerationClient = Depends(get_generation_client)
):
    if not request.task_id:
        return _error("taskId is required")
    return await _proxy("meshy status", lambda: client.meshy_status(request.task_id, request.api_key))


@router.post("/tripo/upload")
async def tripo_upload(
    request: ImageRequest,
    user: User = Depends(require_permission(Permission.MODEL_GENERATE)),
    client: GenerationClient = Depends(get_generation_client)
):
    """Upload an image (base64 data URL) to Tripo3D"""
    if not request.image_base64:
        return _error("imageBase64 is required")
    return await _proxy("tripo upload", lambda: client.tripo_upload(request.image_base64, request.api_key))


@router.post("/tripo/task")
async def tripo_task(
    request: TripoTaskRequest,
    user: User = Depends(require_permission(Permission.MODEL_GENERATE)),
    client: GenerationClient = Depends(get_generation_client)
):
    if not request.image_token:
        return _error("imageToken is required")
    return await _proxy("tripo task", lambda: client.tripo_task(request.image_token, request.api_key))


@router.post("/tripo/status")
async def tripo_status(
    request: TaskRequest,
    user: User = Depends(require_permission(Permission.MODEL_GENERATE)),
    client: GenerationClient = Depends(get_generation_client)
):
    if not request.task_id:
        return _error("taskId is required")
    return await _proxy("tripo status", lambda: client.tripo_status(request.task_id, request.api_key))
