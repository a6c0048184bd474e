from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

import httpx
import msgspec
from loguru import logger
from msgspec import Struct

from histnav.collaborators import CreateOutcome, DiffResult, ListResult, MutationResult, TreeResult
from histnav.config import DEFAULT_TIMEOUT
from histnav.models import (
    CreateResult,
    DiffPayload,
    Failure,
    Ok,
    TreePayload,
    Unavailable,
    VersionEntry,
)
from histnav.serialization import from_json


class _ErrorBody(Struct, rename="camel"):
    error: str | None = None
    git_unavailable: bool = False


def _error_body(response: httpx.Response) -> _ErrorBody:
    try:
        return from_json(_ErrorBody, response.content)
    except (msgspec.DecodeError, msgspec.ValidationError):
        return _ErrorBody()


class HttpVersioningBackend:
    """
    Versioning collaborator backed by the workspace server's REST routes.

    Every call returns a result variant; transport errors, non-2xx statuses and
    undecodable bodies all become Failure. A 503 flagged `gitUnavailable` is
    reported as Unavailable where the contract allows it.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ---------- Contract ----------

    async def list_versions(self, project_id: str) -> ListResult:
        response = await self._send("GET", "/versions", project_id, fallback="Failed to load versions")
        if not isinstance(response, httpx.Response):
            return response
        return self._decode(response, list[VersionEntry], "Failed to load versions")

    async def create_version(self, project_id: str, label: str | None = None) -> CreateOutcome:
        body: dict[str, Any] = {"projectId": project_id}
        if label:
            body["label"] = label
        response = await self._send("POST", "/versions", None, json=body, fallback="Failed to save version")
        if not isinstance(response, httpx.Response):
            return response
        return self._decode(response, CreateResult, "Failed to save version")

    async def get_diff(self, sha: str, project_id: str) -> DiffResult:
        response = await self._send("GET", f"/versions/{quote(sha, safe='')}/diff", project_id, "Failed to load diff")
        if not isinstance(response, httpx.Response):
            return _as_failure(response)
        return self._decode(response, DiffPayload, "Failed to load diff")

    async def get_tree(self, sha: str, project_id: str) -> TreeResult:
        response = await self._send(
            "GET", f"/versions/{quote(sha, safe='')}/tree", project_id, "File tree unavailable"
        )
        if not isinstance(response, httpx.Response):
            return _as_failure(response)
        return self._decode(response, TreePayload, "File tree unavailable")

    async def rollback(self, sha: str, project_id: str) -> MutationResult:
        response = await self._send(
            "POST", f"/versions/{quote(sha, safe='')}/rollback", project_id, json={}, fallback="Rollback failed"
        )
        if not isinstance(response, httpx.Response):
            return _as_failure(response)
        return Ok(None)

    async def delete_version(self, sha: str, project_id: str) -> MutationResult:
        response = await self._send("DELETE", f"/versions/{quote(sha, safe='')}", project_id, "Delete failed")
        if not isinstance(response, httpx.Response):
            return _as_failure(response)
        return Ok(None)

    # ---------- Internal ----------

    async def _send(
        self,
        method: str,
        path: str,
        project_id: str | None,
        fallback: str,
        json: object | None = None,
    ) -> httpx.Response | Failure | Unavailable:
        params = {"projectId": project_id} if project_id is not None else None
        try:
            response = await self._client.request(method, f"{self.base_url}{path}", params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("{} {} failed: {}", method, path, e)
            return Failure(message=fallback)

        if response.is_success:
            return response

        body = _error_body(response)
        logger.debug("{} {} returned {}: {}", method, path, response.status_code, body.error)
        if response.status_code == httpx.codes.SERVICE_UNAVAILABLE and body.git_unavailable:
            return Unavailable(message=body.error or Unavailable().message)
        return Failure(message=body.error or fallback)

    def _decode[T](self, response: httpx.Response, type_spec: type[T], fallback: str) -> Ok[T] | Failure:
        try:
            return Ok(from_json(type_spec, response.content))
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            logger.warning("Undecodable response from {}: {}", response.request.url, e)
            return Failure(message=fallback)


def _as_failure(result: Failure | Unavailable) -> Failure:
    match result:
        case Unavailable(message=message):
            return Failure(message=message)
        case Failure():
            return result
