"""HTTP preview client for the editor's preview endpoint."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

import httpx

from ..contracts import PreviewRequest, PreviewResponse
from .base import PreviewClient
from .stream import ACCEPT_HEADER

PREVIEW_HEADERS = {
    "Accept": ACCEPT_HEADER,
    "X-Requested-With": "XMLHttpRequest",
}


def build_params(request: PreviewRequest) -> List[Tuple[str, str]]:
    """Encode a preview request as query parameters.

    Scalars become ``step[field]=value`` and are omitted when empty;
    booleans are sent as ``"true"``/``"false"``. List and mapping fields are
    sent as one JSON-encoded parameter each.
    """

    record = request.record
    data: dict[str, Any] = {
        "type": record.type,
        "title": record.title,
        "description": record.description,
    }
    if record.payload is not None:
        data.update(record.payload.model_dump(exclude={"kind"}))

    params = [("step_index", str(request.step_index))]
    structured = []
    for key, value in data.items():
        if isinstance(value, (list, dict)):
            structured.append((f"step[{key}]", json.dumps(value)))
        elif isinstance(value, bool):
            params.append((f"step[{key}]", "true" if value else "false"))
        elif value is not None and value != "":
            params.append((f"step[{key}]", str(value)))
    return params + structured


class HttpPreviewClient(PreviewClient):
    """Fetch rendered previews with ``GET <endpoint>?step_index=N&step[...]=...``."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, request: PreviewRequest) -> PreviewResponse:
        if self._client is None:
            await self.connect()

        response = await self._client.get(
            self.url, params=build_params(request), headers=PREVIEW_HEADERS
        )
        return PreviewResponse(
            request=request,
            status_code=response.status_code,
            body=response.text,
            content_type=response.headers.get("content-type", ""),
        )

    def __repr__(self) -> str:
        return f"HttpPreviewClient({self.url!r})"
