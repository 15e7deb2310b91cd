"""
Domain exceptions shared by services and routes
"""
from typing import Any, Optional


class GenerationAPIError(Exception):
    """A 3D generation provider answered with a non-success status"""

    def __init__(self, provider: str, status_code: int, body: str, hint: Optional[str] = None,
                 details: Any = None):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        self.hint = hint
        self.details = details
        super().__init__(f"{provider} API error ({status_code}): {body}")

    def to_dict(self) -> dict:
        payload = {"error": str(self)}
        if self.details is not None:
            payload["details"] = self.details
        if self.hint:
            payload["hint"] = self.hint
        return payload


class AttemptAlreadySubmittedError(Exception):
    """Raised when a quiz attempt is submitted twice"""
