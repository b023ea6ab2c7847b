import json
import logging
from dataclasses import dataclass, field
from typing import Any, Self

import httpx
from pydantic_core import to_jsonable_python

from bitly_cli.config import AppConfig
from bitly_cli.errors import RequestError

logger = logging.getLogger(__name__)

# methods whose params travel in the query string, everything else sends JSON
QUERY_METHODS = frozenset({"GET", "DELETE"})


@dataclass
class Response:
    status: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> dict[str, Any]:
        """Decoded body; every Bitly resource and envelope is a JSON object"""
        try:
            data = json.loads(self.body)
        except ValueError as exc:
            raise RequestError(self.status, self.body, f"invalid JSON in response: {exc}") from exc
        if not isinstance(data, dict):
            raise RequestError(
                self.status, self.body, f"unexpected JSON shape: {type(data).__name__}"
            )
        return data


def _error_message(body: str) -> str | None:
    # Bitly errors look like {"message": "NOT_FOUND", "description": "..."}
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    description = data.get("description")
    if message and description:
        return f"{message}: {description}"
    return message or description


@dataclass
class BitlyClient:
    base_url: str
    token: str | None = None
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None
    _http: httpx.Client = field(init=False, repr=False)

    def __post_init__(self) -> None:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> Self:
        return cls(
            base_url=config.api_url,
            token=config.access_token,
            timeout=config.timeout_seconds,
        )

    def request(
        self, path: str, method: str = "GET", params: dict[str, Any] | None = None
    ) -> Response:
        method = method.upper()
        params = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug("%s %s", method, path)
        try:
            if method in QUERY_METHODS:
                http_response = self._http.request(method, path, params=params or None)
            else:
                http_response = self._http.request(
                    method, path, json=to_jsonable_python(params)
                )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise RequestError(None, "", str(exc)) from exc

        response = Response(
            status=str(http_response.status_code),
            body=http_response.text,
            headers=dict(http_response.headers),
        )
        logger.debug("%s %s -> %s", method, path, response.status)
        if not http_response.is_success:
            logger.warning("%s %s returned %s", method, path, response.status)
            raise RequestError(response.status, response.body, _error_message(response.body))
        return response

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
