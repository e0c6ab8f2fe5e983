from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Optional

import requests

from os_compute.errors import HTTPError, ValidationError
from os_compute.models import AuthState, Credentials, ImageCreate, ListQuery, ServerCreate, build
from os_compute.openstack.auth import authenticate

logger = logging.getLogger(__name__)


def _require_id(value: Any, what: str) -> str:
    if value is None or value == "":
        raise ValidationError(f"{what} param is required")
    return str(value)


class ComputeClient:
    """
    Bindings for the OpenStack Compute API.

    Every method issues one HTTP request against the compute endpoint and
    hands back the raw response body (deletes return whether the call
    succeeded). Authentication happens on first use and is kept for the
    lifetime of the instance.

        compute = ComputeClient(auth_url, user, password, project_id, region="RegionOne")
        compute.create_server(name="s1", flavor=flavor_id, image=image_id)
    """

    def __init__(
        self,
        auth_url: str,
        user: str,
        password: str,
        project_id: str,
        region: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        strict: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self.credentials = build(
            Credentials,
            auth_url=auth_url,
            user=user,
            password=password,
            project_id=project_id,
            region=region,
        )
        self.strict = strict
        self.timeout = timeout
        self._session = session or requests.Session()
        self._auth: Optional[AuthState] = None
        self._auth_lock = threading.Lock()

    @classmethod
    def from_credentials(cls, credentials: Credentials, **kwargs) -> "ComputeClient":
        return cls(**credentials.model_dump(), **kwargs)

    # -- auth --------------------------------------------------------------

    @property
    def authenticated(self) -> bool:
        return self._auth is not None

    def connect(self) -> AuthState:
        """Resolve the token and compute endpoint now instead of on first call."""
        if self._auth is None:
            with self._auth_lock:
                if self._auth is None:
                    state = authenticate(self.credentials, session=self._session, timeout=self.timeout)
                    self._session.headers["X-Auth-Token"] = state.token
                    self._auth = state
        return self._auth

    @property
    def base_url(self) -> str:
        return self.connect().base_url

    # -- servers -----------------------------------------------------------

    def get_servers(self, detail: bool = True) -> str:
        query = build(ListQuery, detail=detail)
        return self._read("GET", f"/servers{query.suffix}")

    def get_server(self, id: Any) -> str:
        server_id = _require_id(id, "id")
        return self._read("GET", f"/servers/{server_id}")

    def create_server(self, name: Optional[str] = None, flavor: Optional[str] = None, image: Optional[str] = None) -> str:
        req = build(ServerCreate, name=name, flavor=flavor, image=image)
        return self._read("POST", "/servers", json=req.to_body())

    def delete_server(self, id: Any) -> bool:
        server_id = _require_id(id, "id")
        return self._delete(f"/servers/{server_id}")

    # -- images ------------------------------------------------------------

    def get_images(self, detail: bool = True) -> str:
        query = build(ListQuery, detail=detail)
        return self._read("GET", f"/images{query.suffix}")

    def get_image(self, id: Any) -> str:
        image_id = _require_id(id, "id")
        return self._read("GET", f"/images/{image_id}")

    def create_image(
        self,
        name: Optional[str] = None,
        server: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> str:
        req = build(ImageCreate, name=name, server=server, meta=meta)
        return self._read("POST", f"/servers/{req.server}/action", json=req.to_body())

    def delete_image(self, id: Any) -> bool:
        image_id = _require_id(id, "id")
        return self._delete(f"/images/{image_id}")

    # -- transport ---------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.base_url + path
        logger.debug("%s %s", method, url)
        try:
            return self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise HTTPError(f"{method} {url} failed: {exc}", url=url) from exc

    def _read(self, method: str, path: str, **kwargs) -> str:
        r = self._request(method, path, **kwargs)
        if not _is_success(r):
            if self.strict:
                raise HTTPError(
                    f"{method} {r.url} returned {r.status_code} {r.reason}",
                    http_status=r.status_code,
                    body=r.text,
                    url=r.url,
                )
            logger.warning("%s %s returned %s", method, r.url, r.status_code)
        return r.text

    def _delete(self, path: str) -> bool:
        r = self._request("DELETE", path)
        ok = _is_success(r)
        if not ok:
            logger.warning("DELETE %s returned %s", r.url, r.status_code)
        return ok


def _is_success(r: requests.Response) -> bool:
    return 200 <= r.status_code < 300
