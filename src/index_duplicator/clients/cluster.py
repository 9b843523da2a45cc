"""HTTP client for the Elasticsearch management API.

Status codes are returned to the caller, never raised, so components can
tell "cluster reachable but resource missing" apart from "cluster
unreachable". Transport failures raise :class:`HostUnreachable`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from index_duplicator.config import ClusterConfig
from index_duplicator.errors import HostUnreachable, RequestTimedOut

logger = logging.getLogger("index_duplicator.clients.cluster")


@dataclass(frozen=True)
class ClusterResponse:
    """Status code and decoded body of one management API call."""

    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error_type(self) -> str:
        """``error.type`` from an Elasticsearch error envelope, or ``""``."""
        error = self.body.get("error") if isinstance(self.body, dict) else None
        if isinstance(error, dict):
            return str(error.get("type", ""))
        return ""

    @property
    def error_reason(self) -> str:
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict):
                return str(error.get("reason", ""))
            if error:
                return str(error)
        if isinstance(self.body, str):
            return self.body
        return ""


def index_path(*names: str) -> str:
    """Join index or alias names into a URL path, quoting each segment."""
    return "/" + "/".join(quote(name, safe="") for name in names)


class ClusterClient:
    """Thin ``requests`` wrapper over the cluster's HTTP API.

    Automatic retries are disabled. Re-sending a create, copy or alias update
    without knowing whether the first attempt landed could duplicate its
    effect.
    """

    def __init__(self, config: ClusterConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.base_url = config.host.rstrip("/")
        self._session = session or self._build_session()

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=0)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        if self.config.auth:
            session.auth = self.config.auth
        if self.config.ca_certs:
            session.verify = self.config.ca_certs
        else:
            session.verify = self.config.verify_certs
        return session

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> ClusterClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # HTTP verbs
    # ------------------------------------------------------------------

    def get(self, path: str, params: dict[str, Any] | None = None) -> ClusterResponse:
        return self.request("GET", path, params=params)

    def head(self, path: str) -> ClusterResponse:
        return self.request("HEAD", path)

    def put(self, path: str, body: Any = None) -> ClusterResponse:
        return self.request("PUT", path, body=body)

    def post(
        self,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ClusterResponse:
        return self.request("POST", path, body=body, params=params, timeout=timeout)

    def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ClusterResponse:
        """Send one request and decode the response.

        Raises :class:`HostUnreachable` on transport failure. HTTP errors are
        returned as a :class:`ClusterResponse` with a non-2xx status.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        data = json.dumps(body) if body is not None else None
        logger.debug("%s %s %s", method, url, data or "")

        try:
            resp = self._session.request(
                method,
                url,
                data=data,
                params=params,
                timeout=timeout or self.config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimedOut(
                f"Request to {self.base_url} timed out ({method} {path})",
                host=self.base_url,
            ) from e
        except requests.exceptions.RequestException as e:
            raise HostUnreachable(
                f"Cannot reach Elasticsearch at {self.base_url}: {e}",
                host=self.base_url,
            ) from e

        result = ClusterResponse(resp.status_code, self._decode(resp))
        logger.debug("%s %s -> %d", method, path, result.status_code)
        return result

    @staticmethod
    def _decode(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text
