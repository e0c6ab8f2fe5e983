from __future__ import annotations

from typing import Optional


class ComputeError(RuntimeError):
    """Base class for everything the client raises."""


class ValidationError(ComputeError, ValueError):
    """A required parameter is missing or malformed. No request was sent."""


class ConfigError(ComputeError):
    pass


class AuthError(ComputeError):
    def __init__(self, message: str, http_status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.http_status = http_status
        self.body = body


class HTTPError(ComputeError):
    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.http_status = http_status
        self.body = body
        self.url = url
