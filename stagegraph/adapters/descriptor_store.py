"""Descriptor stores: where descriptor text is kept.

Stores move opaque text only; parsing belongs to the converter.
"""

from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

import httpx

from stagegraph.config import get_settings
from stagegraph.errors import StoreError


class DescriptorStore(Protocol):
    """Protocol for keeping descriptor text by pipeline id."""

    def get(self, pipeline_id: str) -> str | None:
        """Descriptor text, or None when nothing is stored."""
        ...

    def put(self, pipeline_id: str, text: str) -> None:
        ...

    def delete(self, pipeline_id: str) -> None:
        ...

    def list_all(self) -> dict[str, str]:
        """Every stored descriptor keyed by pipeline id."""
        ...


class InMemoryDescriptorStore:
    """Keeps descriptors in a dict."""

    def __init__(self) -> None:
        self.descriptors: dict[str, str] = {}

    def get(self, pipeline_id: str) -> str | None:
        return self.descriptors.get(pipeline_id)

    def put(self, pipeline_id: str, text: str) -> None:
        self.descriptors[pipeline_id] = text

    def delete(self, pipeline_id: str) -> None:
        self.descriptors.pop(pipeline_id, None)

    def list_all(self) -> dict[str, str]:
        return dict(self.descriptors)


class FileDescriptorStore:
    """One `<pipeline id>.yaml` file per descriptor in a directory."""

    SUFFIX = ".yaml"

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, pipeline_id: str) -> Path:
        # ids come from URLs and user input; keep them inside the directory
        return self.directory / f"{quote(pipeline_id, safe='')}{self.SUFFIX}"

    def get(self, pipeline_id: str) -> str | None:
        path = self._path(pipeline_id)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, pipeline_id: str, text: str) -> None:
        self._path(pipeline_id).write_text(text, encoding="utf-8")

    def delete(self, pipeline_id: str) -> None:
        self._path(pipeline_id).unlink(missing_ok=True)

    def list_all(self) -> dict[str, str]:
        return {
            unquote(path.name[: -len(self.SUFFIX)]): path.read_text(encoding="utf-8")
            for path in sorted(self.directory.glob(f"*{self.SUFFIX}"))
        }


class HttpDescriptorStore:
    """Descriptor store backed by the stagegraph server's /api/pipeline-yaml routes."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Base URL of the stagegraph server (default STAGEGRAPH_SERVER_URL)
            timeout: HTTP request timeout in seconds (default STAGEGRAPH_HTTP_TIMEOUT)
            transport: Optional httpx transport, e.g. for tests
        """
        settings = get_settings()
        self.base_url = (base_url or settings.server_url).rstrip("/")
        self.timeout = settings.http_timeout if timeout is None else timeout
        self.transport = transport

    def _url(self, pipeline_id: str | None = None) -> str:
        url = f"{self.base_url}/api/pipeline-yaml"
        if pipeline_id is not None:
            url = f"{url}/{quote(pipeline_id, safe='')}"
        return url

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                return client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise StoreError(f"Failed to connect to server at {self.base_url}: {e}") from e

    @staticmethod
    def _check(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Descriptor store request failed ({response.status_code}): {response.text}"
            ) from e

    def get(self, pipeline_id: str) -> str | None:
        response = self._request("GET", self._url(pipeline_id))
        if response.status_code == 404:
            return None
        self._check(response)
        return response.json().get("yaml")

    def put(self, pipeline_id: str, text: str) -> None:
        response = self._request("POST", self._url(pipeline_id), json={"yaml": text})
        self._check(response)

    def delete(self, pipeline_id: str) -> None:
        response = self._request("DELETE", self._url(pipeline_id))
        self._check(response)

    def list_all(self) -> dict[str, str]:
        response = self._request("GET", self._url())
        self._check(response)
        return response.json()
