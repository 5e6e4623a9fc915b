"""WebDAV collection operations used by the backup daemon."""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import IO, Dict, Iterable, Optional, Union

import requests

from .config import Settings
from .utils import join_url

LOGGER = logging.getLogger(__name__)

MKCOL = "MKCOL"
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

Body = Union[bytes, IO[bytes], Iterable[bytes], None]


class WebDAVError(Exception):
    """Base class for errors raised while talking to the WebDAV server."""


class ConstructionError(WebDAVError):
    """Raised when a request cannot be built from the given method and URL."""


class TransportError(WebDAVError):
    """Raised when a request could not be delivered or answered."""


class RemoteStatusError(WebDAVError):
    """Raised when the server answered with a status the caller cannot accept."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CreateOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CreateResult:
    outcome: CreateOutcome
    status_code: int

    @property
    def ok(self) -> bool:
        return self.outcome is CreateOutcome.CREATED

    @classmethod
    def from_status(cls, status_code: int) -> "CreateResult":
        if status_code == 201:
            return cls(CreateOutcome.CREATED, status_code)
        # RFC 4918 9.3.1: MKCOL on an existing resource answers 405.
        if status_code == 405:
            return cls(CreateOutcome.ALREADY_EXISTS, status_code)
        return cls(CreateOutcome.REJECTED, status_code)


class WebDAVClient:
    """Issue authenticated requests below ``settings.upload_root``."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self._session = session or requests.Session()

    def url_for(self, *segments: str) -> str:
        return join_url(self.settings.upload_root, *segments)

    def new_request(
        self,
        method: str,
        url: str,
        body: Body = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.PreparedRequest:
        """Build (but do not send) a request carrying basic auth credentials."""

        if not method or not _METHOD_RE.match(method):
            raise ConstructionError(f"Invalid HTTP method {method!r}.")
        request = requests.Request(
            method=method.upper(),
            url=url,
            data=body,
            headers=headers,
            auth=self.settings.auth,
        )
        try:
            return self._session.prepare_request(request)
        except (requests.RequestException, ValueError) as exc:
            raise ConstructionError(f"Cannot build {method} request for '{url}': {exc}") from exc

    def send(self, prepared: requests.PreparedRequest) -> requests.Response:
        options = self._session.merge_environment_settings(prepared.url, {}, None, None, None)
        try:
            return self._session.send(prepared, timeout=self.settings.request_timeout, **options)
        except (requests.RequestException, OSError) as exc:
            raise TransportError(f"{prepared.method} {prepared.url} failed: {exc}") from exc

    # ------------------------------------------------------------------
    def exists(self, name: str) -> bool:
        return self._status_of("GET", name) == 200

    def create(self, name: str) -> CreateResult:
        result = CreateResult.from_status(self._status_of(MKCOL, name))
        LOGGER.debug("MKCOL %s -> %s (%s)", name, result.status_code, result.outcome.value)
        return result

    def delete(self, name: str) -> bool:
        return self._status_of("DELETE", name) == 204

    def ensure_directory(self, name: str) -> CreateResult:
        """Create the dated collection *name* unless it is already there."""

        if self.exists(name):
            return CreateResult(CreateOutcome.ALREADY_EXISTS, 200)
        result = self.create(name)
        if result.outcome is CreateOutcome.REJECTED:
            raise RemoteStatusError(
                f"Cannot create remote directory '{name}': HTTP {result.status_code}",
                result.status_code,
            )
        if result.ok:
            LOGGER.info("Created remote directory '%s'.", name)
        return result

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    def _status_of(self, method: str, name: str) -> int:
        prepared = self.new_request(method, self.url_for(name))
        with self.send(prepared) as response:
            return response.status_code


__all__ = [
    "ConstructionError",
    "CreateOutcome",
    "CreateResult",
    "RemoteStatusError",
    "TransportError",
    "WebDAVClient",
    "WebDAVError",
]
