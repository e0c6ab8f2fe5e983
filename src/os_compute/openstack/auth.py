from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

import pydantic
import requests
from pydantic import BaseModel, Field, field_validator

from os_compute.errors import AuthError
from os_compute.models import AuthState, Credentials

logger = logging.getLogger(__name__)

_KEYSTONE_V2 = re.compile(r"/v2(\.\d+)?(/|$)")


def is_keystone(auth_url: str) -> bool:
    """Keystone v2.0 URLs look like https://host:5000/v2.0; anything else is v1 basic auth."""
    return bool(_KEYSTONE_V2.search(auth_url))


def authenticate(
    creds: Credentials,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> AuthState:
    """
    Perform the single identity exchange and return the token plus the
    compute endpoint for `creds.region`.
    """
    http = session or requests.Session()
    if is_keystone(creds.auth_url):
        state = _auth_keystone(http, creds, timeout)
    else:
        state = _auth_basic(http, creds, timeout)
    logger.info("Resolved compute endpoint %s", state.base_url)
    return state


class _Endpoint(BaseModel):
    region: Optional[str] = None
    publicURL: Optional[str] = None


class _Service(BaseModel):
    type: Optional[str] = None
    endpoints: List[_Endpoint] = Field(default_factory=list)

    @field_validator("endpoints", mode="before")
    @classmethod
    def _no_endpoints(cls, v: Any) -> Any:
        return [] if v is None else v


class _Token(BaseModel):
    id: str = Field(min_length=1)


class _Access(BaseModel):
    token: _Token
    serviceCatalog: List[_Service]


class _TokenResponse(BaseModel):
    """Subset of the Keystone v2.0 POST /tokens response that we read."""

    access: _Access


def _auth_keystone(http: requests.Session, creds: Credentials, timeout: Optional[float]) -> AuthState:
    url = creds.auth_url.rstrip("/") + "/tokens"
    payload = {
        "auth": {
            "passwordCredentials": {"username": creds.user, "password": creds.password},
            "tenantName": creds.project_id,
        }
    }
    logger.debug("POST %s (keystone v2.0, tenant=%s)", url, creds.project_id)
    r = _send(http, "POST", url, timeout, json=payload)

    try:
        access = _TokenResponse.model_validate(r.json()).access
    except (ValueError, pydantic.ValidationError) as exc:
        raise AuthError("Malformed identity response", http_status=r.status_code, body=r.text) from exc

    compute = [svc for svc in access.serviceCatalog if svc.type == "compute"]
    if not compute:
        raise AuthError("No compute service in the service catalog", http_status=r.status_code)

    endpoint = _pick_endpoint(compute[0].endpoints, creds.region)
    if not endpoint.publicURL:
        raise AuthError("Compute endpoint has no publicURL", http_status=r.status_code)

    return _state(access.token.id, endpoint.publicURL, r)


def _pick_endpoint(endpoints: List[_Endpoint], region: Optional[str]) -> _Endpoint:
    if not endpoints:
        raise AuthError("Compute service lists no endpoints")
    if region is None:
        return endpoints[0]
    for ep in endpoints:
        if ep.region == region:
            return ep
    regions = ", ".join(str(ep.region) for ep in endpoints)
    raise AuthError(f"No compute endpoint for region {region!r} (available: {regions})")


def _auth_basic(http: requests.Session, creds: Credentials, timeout: Optional[float]) -> AuthState:
    headers = {
        "X-Auth-User": creds.user,
        "X-Auth-Key": creds.password,
        "X-Auth-Project-Id": creds.project_id,
    }
    logger.debug("GET %s (basic auth, project=%s)", creds.auth_url, creds.project_id)
    r = _send(http, "GET", creds.auth_url, timeout, headers=headers)

    token = r.headers.get("X-Auth-Token")
    base_url = r.headers.get("X-Server-Management-Url")
    if not token or not base_url:
        raise AuthError(
            "Identity response is missing X-Auth-Token or X-Server-Management-Url",
            http_status=r.status_code,
            body=r.text,
        )
    return _state(token, base_url, r)


def _state(token: Any, base_url: Any, r: requests.Response) -> AuthState:
    try:
        return AuthState(token=token, base_url=base_url)
    except pydantic.ValidationError as exc:
        raise AuthError("Identity response carries an invalid token or endpoint", http_status=r.status_code) from exc


def _send(http: requests.Session, method: str, url: str, timeout: Optional[float], **kwargs) -> requests.Response:
    try:
        r = http.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        raise AuthError(f"Identity request to {url} failed: {exc}") from exc
    if not 200 <= r.status_code < 300:
        raise AuthError(
            f"Authentication failed: {r.status_code} {r.reason}",
            http_status=r.status_code,
            body=r.text,
        )
    return r
