"""OpenSearch connector — REST search over httpx."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote, unquote, urlsplit, urlunsplit

import httpx

from skeet.connectors.base import ServiceConnector, ToolHandler, require_text, split_resource_path
from skeet.errors import UpstreamQueryError
from skeet.models import ServiceConfig
from skeet.tools import ResourceDeclaration, ToolDeclaration, ToolParameter
from skeet.types import ServiceKind


def split_credentials(dsn: str) -> tuple[str, tuple[str, str] | None]:
    """Move ``user:pass@`` out of the node URL into basic-auth credentials."""
    parts = urlsplit(dsn)
    if not parts.username:
        return dsn.rstrip("/"), None
    host = parts.netloc.rsplit("@", 1)[-1]
    base = urlunsplit((parts.scheme, host, parts.path, "", "")).rstrip("/")
    return base, (unquote(parts.username), unquote(parts.password or ""))


def build_search_body(query: str) -> dict[str, Any]:
    """Structured JSON query if it parses, otherwise a query_string search."""
    try:
        body = json.loads(query)
    except ValueError:
        body = None
    if isinstance(body, dict):
        return body
    return {"query": {"query_string": {"query": query}}}


class OpenSearchConnector(ServiceConnector):
    kind = ServiceKind.OPENSEARCH
    TOOLS = (
        ToolDeclaration(
            name="opensearch_search",
            description="Run a search query against OpenSearch",
            parameters=(
                ToolParameter(name="query", type="string", required=True,
                              description="JSON query body or a plain query string"),
                ToolParameter(name="index", type="string"),
            ),
        ),
    )

    def __init__(self, config: ServiceConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _connect(self, dsn: str) -> None:
        base_url, auth = split_credentials(dsn)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=auth,
            verify=bool(self.config.options.get("verify_ssl", False)),
            timeout=float(self.config.options.get("timeout", 15.0)),
            transport=self._transport,
        )

    async def _probe(self) -> None:
        resp = await self._client.get("/_cat/health", params={"format": "json"})
        resp.raise_for_status()

    async def _close(self) -> None:
        if self._client:
            client, self._client = self._client, None
            await client.aclose()

    def _handlers(self) -> dict[str, ToolHandler]:
        return {"opensearch_search": self.search}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self._require_initialized()
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamQueryError(f"OpenSearch request failed: {e}") from e
        if resp.is_error:
            raise UpstreamQueryError(f"OpenSearch returned {resp.status_code}: {resp.text}")
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamQueryError(f"OpenSearch returned a non-JSON body: {e}") from e

    async def search(self, query: str, index: str | None = None) -> Any:
        require_text(query, "query")
        path = f"/{quote(index, safe=',*')}/_search" if index else "/_search"
        return await self._request("POST", path, json=build_search_body(query))

    async def list_resources(self) -> list[ResourceDeclaration]:
        indices = await self._request("GET", "/_cat/indices", params={"format": "json"})
        return [
            ResourceDeclaration(
                uri=self.resource_uri(f"indices/{row['index']}"),
                name=f"{row['index']} index mapping",
                description="Field mapping of an OpenSearch index",
                metadata={"docs_count": row.get("docs.count"), "health": row.get("health")},
            )
            for row in sorted(indices, key=lambda r: r.get("index", ""))
            if row.get("index")
        ]

    async def read_resource(self, path: str) -> Any:
        index = split_resource_path(path, "indices")
        return await self._request("GET", f"/{quote(index, safe='')}/_mapping")
