"""
HTTP client for the image-to-3D providers (Meshy.ai and Tripo3D)
"""
import base64
import binascii
import re
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from quimica.core.config import Settings, get_settings
from quimica.core.errors import GenerationAPIError
from quimica.core.logging_config import LoggingConfig
from quimica.core.metrics import (generation_request_duration_seconds,
                                  generation_requests_total)

logger = LoggingConfig.get_logger(__name__)

MESHY = "Meshy"
TRIPO = "Tripo3D"

MESHY_TASK_OPTIONS = {
    "ai_model": "meshy-4",
    "should_remesh": True,
    "should_texture": True,
    "target_polycount": 30000,
}

KEY_HINTS = {
    MESHY: "Check that your Meshy API key is valid. It should start with 'msy'",
    TRIPO: "Check that your Tripo3D API key is valid. It should start with 'tsk_'",
}

DATA_URL_PATTERN = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def parse_data_url(value: str) -> Tuple[str, bytes]:
    """
    Split a base64 data URL into its mime type and decoded bytes

    Raises:
        ValueError: If the value is not a base64 data URL
    """
    match = DATA_URL_PATTERN.match(value or "")
    if not match:
        raise ValueError("Invalid base64 data URL format")
    mime_type, data = match.group(1), match.group(2)
    try:
        return mime_type, base64.b64decode(data)
    except binascii.Error as e:
        raise ValueError("Invalid base64 data URL format") from e


def upload_filename(mime_type: str) -> str:
    return f"upload.{IMAGE_EXTENSIONS.get(mime_type, 'png')}"


class GenerationClient:
    """
    Forwards generation requests to Meshy.ai and Tripo3D

    Every call needs an API key: the one sent by the user, else the server
    key from settings.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.generation_timeout_seconds,
            transport=self._transport,
        )

    def resolve_key(self, provider: str, api_key: Optional[str]) -> str:
        """
        Raises:
            ValueError: If neither the request nor the settings provide a key
        """
        if api_key:
            return api_key
        fallback = self.settings.meshy_api_key if provider == MESHY else self.settings.tripo_api_key
        if not fallback:
            raise ValueError("apiKey is required")
        return fallback

    async def _request(
        self,
        provider: str,
        operation: str,
        method: str,
        url: str,
        api_key: str,
        include_details: bool = False,
        **kwargs,
    ) -> Any:
        """
        Send one request to a provider and decode its JSON answer

        Raises:
            GenerationAPIError: If the provider answers with a non-2xx status
            httpx.HTTPError: On transport failures
        """
        headers = {"Authorization": f"Bearer {api_key}"}
        start_time = time.time()
        status = "error"
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=headers, **kwargs)

            logger.debug(
                f"{provider} {operation} responded {response.status_code}",
                extra={"provider": provider, "operation": operation, "status_code": response.status_code}
            )
            if not response.is_success:
                status = "upstream_error"
                logger.warning(
                    f"{provider} {operation} failed with status {response.status_code}",
                    extra={"provider": provider, "operation": operation, "body": response.text[:500]}
                )
                raise GenerationAPIError(
                    provider,
                    response.status_code,
                    response.text,
                    hint=KEY_HINTS[provider] if response.status_code == 401 else None,
                    details=response.text if include_details else None,
                )
            try:
                data = response.json()
            except ValueError as e:
                raise RuntimeError(f"{provider} returned a response that is not JSON") from e
            status = "success"
            return data
        finally:
            generation_requests_total.labels(provider=provider, operation=operation, status=status).inc()
            generation_request_duration_seconds.labels(provider=provider, operation=operation).observe(
                time.time() - start_time
            )

    async def meshy_create(self, image_base64: str, api_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Start a Meshy image-to-3D task

        Args:
            image_base64: Image as a data URL, accepted by Meshy as image_url
            api_key: Meshy key (falls back to settings)

        Returns:
            {"task_id": ...}
        """
        key = self.resolve_key(MESHY, api_key)
        logger.info("Creating Meshy image-to-3D task", extra={"key_prefix_ok": key.startswith("msy")})
        data = await self._request(
            MESHY,
            "create",
            "POST",
            f"{self.settings.meshy_api_url}/image-to-3d",
            key,
            json={"image_url": image_base64, **MESHY_TASK_OPTIONS},
        )
        return {"task_id": data.get("result")}

    async def meshy_status(self, task_id: str, api_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Poll a Meshy task

        Returns:
            Normalized dict with status, progress, model_url (GLB),
            thumbnail_url and error
        """
        key = self.resolve_key(MESHY, api_key)
        data = await self._request(
            MESHY, "status", "GET", f"{self.settings.meshy_api_url}/image-to-3d/{task_id}", key
        )
        return {
            "status": data.get("status"),
            "progress": data.get("progress") or 0,
            "model_url": (data.get("model_urls") or {}).get("glb"),
            "thumbnail_url": data.get("thumbnail_url") or None,
            "error": (data.get("task_error") or {}).get("message") or None,
        }

    async def tripo_upload(self, image_base64: str, api_key: Optional[str] = None) -> Any:
        """
        Upload an image to Tripo3D and return its answer (holding the image token)

        Raises:
            ValueError: If the image is not a base64 data URL
        """
        key = self.resolve_key(TRIPO, api_key)
        mime_type, content = parse_data_url(image_base64)
        filename = upload_filename(mime_type)
        logger.info(
            f"Uploading {len(content)} bytes to Tripo3D",
            extra={"mime_type": mime_type, "key_prefix_ok": key.startswith("tsk_")}
        )
        return await self._request(
            TRIPO,
            "upload",
            "POST",
            f"{self.settings.tripo_api_url}/upload",
            key,
            include_details=True,
            files={"file": (filename, content, mime_type)},
        )

    async def tripo_task(self, image_token: str, api_key: Optional[str] = None) -> Any:
        """Start a Tripo3D image-to-model task from an uploaded image token"""
        key = self.resolve_key(TRIPO, api_key)
        return await self._request(
            TRIPO,
            "task",
            "POST",
            f"{self.settings.tripo_api_url}/task",
            key,
            json={"type": "image_to_model", "file": {"type": "image", "file_token": image_token}},
        )

    async def tripo_status(self, task_id: str, api_key: Optional[str] = None) -> Any:
        key = self.resolve_key(TRIPO, api_key)
        return await self._request(
            TRIPO, "status", "GET", f"{self.settings.tripo_api_url}/task/{task_id}", key
        )
