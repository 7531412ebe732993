"""docs.rs documentation provider.

Fetches the rustdoc JSON export that docs.rs publishes for each crate
build. Crates built before JSON output was enabled only have HTML docs,
so the provider falls back to the crate's ``all.html`` item listing.
"""

import gzip
import json
import logging
import zlib
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from ..detector import ProjectDetector
from ..errors import FetchError, FetchErrorReason, ParseError
from ..models import DocEntry, EntryKind, PackageIdentity, RawDocument
from .base import DocsProvider

logger = logging.getLogger(__name__)

PROVIDER_ID = "docs.rs"
DISPLAY_NAME = "docs.rs (rustdoc)"

JSON_CONTENT_TYPE = "application/json"
HTML_CONTENT_TYPE = "text/html"

GZIP_MAGIC = b"\x1f\x8b"

# rustdoc item kind -> (entry kind, docs.rs page prefix)
RUSTDOC_KINDS: Dict[str, tuple] = {
    "module": (EntryKind.MODULE, None),
    "struct": (EntryKind.TYPE, "struct"),
    "enum": (EntryKind.TYPE, "enum"),
    "union": (EntryKind.TYPE, "union"),
    "type_alias": (EntryKind.TYPE, "type"),
    "typedef": (EntryKind.TYPE, "type"),
    "primitive": (EntryKind.TYPE, "primitive"),
    "function": (EntryKind.FUNCTION, "fn"),
    "constant": (EntryKind.CONSTANT, "constant"),
    "static": (EntryKind.CONSTANT, "static"),
    "trait": (EntryKind.TRAIT, "trait"),
    "trait_alias": (EntryKind.TRAIT, "traitalias"),
    "macro": (EntryKind.OTHER, "macro"),
    "proc_attribute": (EntryKind.OTHER, "attr"),
    "proc_derive": (EntryKind.OTHER, "derive"),
}

# all.html section id -> entry kind
HTML_SECTIONS: Dict[str, EntryKind] = {
    "modules": EntryKind.MODULE,
    "structs": EntryKind.TYPE,
    "enums": EntryKind.TYPE,
    "unions": EntryKind.TYPE,
    "types": EntryKind.TYPE,
    "type-aliases": EntryKind.TYPE,
    "primitives": EntryKind.TYPE,
    "functions": EntryKind.FUNCTION,
    "constants": EntryKind.CONSTANT,
    "statics": EntryKind.CONSTANT,
    "traits": EntryKind.TRAIT,
    "trait-aliases": EntryKind.TRAIT,
    "macros": EntryKind.OTHER,
    "attributes": EntryKind.OTHER,
    "derives": EntryKind.OTHER,
}


def crate_module_name(package_name: str) -> str:
    """Crate names may use dashes, their root module never does."""
    return package_name.replace("-", "_")


class DocsRsProvider(DocsProvider):
    """Documentation provider backed by docs.rs."""

    def __init__(
        self,
        base_url: str = "https://docs.rs",
        timeout: int = 30,
        user_agent: str = "indexed-docs",
        project_dir: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize docs.rs provider.

        Args:
            base_url: docs.rs base URL
            timeout: Request timeout in seconds
            user_agent: User-Agent header sent with every request
            project_dir: Rust project whose Cargo.toml drives suggestions
            client: Preconfigured HTTP client (owned by the caller)
        """
        super().__init__(PROVIDER_ID, DISPLAY_NAME)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.project_dir = project_dir
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def json_url(self, identity: PackageIdentity) -> str:
        version = identity.version or "latest"
        return f"{self.base_url}/crate/{identity.name}/{version}/json.gz"

    def html_url(self, identity: PackageIdentity) -> str:
        version = identity.version or "latest"
        module = crate_module_name(identity.name)
        return f"{self.base_url}/{identity.name}/{version}/{module}/all.html"

    async def fetch_raw(self, identity: PackageIdentity) -> RawDocument:
        response = await self._get(identity, self.json_url(identity))
        if response.status_code == 200:
            return RawDocument(
                identity=identity,
                content=self._decompress(identity, response.content),
                content_type=JSON_CONTENT_TYPE,
                source_url=str(response.url),
            )
        if response.status_code != 404:
            self._raise_for_status(identity, response)

        logger.info("No rustdoc JSON for %s, falling back to all.html", identity.key)
        response = await self._get(identity, self.html_url(identity))
        if response.status_code != 200:
            self._raise_for_status(identity, response)

        return RawDocument(
            identity=identity,
            content=response.content,
            content_type=HTML_CONTENT_TYPE,
            source_url=str(response.url),
        )

    async def _get(self, identity: PackageIdentity, url: str) -> httpx.Response:
        logger.debug("GET %s", url)
        try:
            return await self.client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(identity, FetchErrorReason.NETWORK_ERROR, str(e)) from e

    def _raise_for_status(self, identity: PackageIdentity, response: httpx.Response) -> None:
        status = response.status_code
        if status == 404:
            raise FetchError(identity, FetchErrorReason.NOT_FOUND, f"{response.url} returned 404")
        if status == 429:
            raise FetchError(
                identity,
                FetchErrorReason.RATE_LIMITED,
                "docs.rs rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        raise FetchError(
            identity,
            FetchErrorReason.NETWORK_ERROR,
            f"{response.url} returned HTTP {status}",
        )

    def _decompress(self, identity: PackageIdentity, content: bytes) -> bytes:
        # httpx already strips Content-Encoding; the json.gz body itself is gzip
        if not content.startswith(GZIP_MAGIC):
            return content
        try:
            return gzip.decompress(content)
        except (OSError, EOFError, zlib.error) as e:
            raise FetchError(
                identity, FetchErrorReason.NETWORK_ERROR, f"truncated or corrupt download: {e}"
            ) from e

    def parse(self, raw: RawDocument) -> List[DocEntry]:
        if raw.content_type == HTML_CONTENT_TYPE:
            entries = self._parse_all_html(raw)
        else:
            entries = self._parse_rustdoc_json(raw)
        return sorted(entries, key=lambda entry: entry.path)

    def _parse_rustdoc_json(self, raw: RawDocument) -> List[DocEntry]:
        try:
            data = json.loads(raw.content)
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(raw.identity, f"invalid rustdoc JSON: {e}", raw.content) from e

        if not isinstance(data, dict):
            raise ParseError(raw.identity, "rustdoc JSON is not an object", raw.content)
        index = data.get("index")
        paths = data.get("paths")
        if not isinstance(index, dict) or not isinstance(paths, dict):
            raise ParseError(raw.identity, "rustdoc JSON lacks 'index' or 'paths'", raw.content)

        version = raw.identity.version or data.get("crate_version") or "latest"
        entries = []
        for item_id, summary in paths.items():
            if not isinstance(summary, dict) or summary.get("crate_id") != 0:
                continue
            path = summary.get("path") or []
            kind_name = summary.get("kind")
            if not isinstance(path, list) or not path:
                continue
            if not all(isinstance(p, str) and p for p in path):
                continue

            item: Dict[str, Any] = index.get(str(item_id)) or {}
            if not isinstance(item, dict):
                raise ParseError(
                    raw.identity, f"rustdoc index entry {item_id} is not an object", raw.content
                )
            if isinstance(kind_name, str) and kind_name in RUSTDOC_KINDS:
                kind, prefix = RUSTDOC_KINDS[kind_name]
            else:
                kind, prefix = EntryKind.OTHER, None
            docs = item.get("docs")
            entries.append(DocEntry(
                path=tuple(path),
                kind=kind,
                title=path[-1],
                body=docs.strip() if isinstance(docs, str) else "",
                source_url=self._page_url(raw.identity.name, version, path, kind, prefix),
            ))

        return entries

    def _page_url(
        self,
        package_name: str,
        version: str,
        path: List[str],
        kind: EntryKind,
        prefix: Optional[str],
    ) -> Optional[str]:
        base = f"{self.base_url}/{package_name}/{version}"
        if kind is EntryKind.MODULE:
            return f"{base}/{'/'.join(path)}/index.html"
        if prefix is None:
            return None
        parents = "/".join(path[:-1])
        return f"{base}/{parents}/{prefix}.{path[-1]}.html"

    def _parse_all_html(self, raw: RawDocument) -> List[DocEntry]:
        soup = BeautifulSoup(raw.content, "html.parser")
        crate = crate_module_name(raw.identity.name)
        entries = [DocEntry(
            path=(crate,),
            kind=EntryKind.MODULE,
            title=crate,
            source_url=urljoin(raw.source_url, "index.html") if raw.source_url else None,
        )]
        sections = 0

        for heading in soup.find_all("h3"):
            kind = HTML_SECTIONS.get(heading.get("id", ""))
            if kind is None:
                continue
            item_list = heading.find_next_sibling("ul")
            if item_list is None:
                continue
            sections += 1

            for link in item_list.find_all("a"):
                name = link.get_text(strip=True)
                if not name:
                    continue
                segments = tuple(name.split("::"))
                if not all(segments):
                    logger.debug("Skipping malformed item name %r", name)
                    continue
                path = (crate,) + segments
                href = link.get("href")
                entries.append(DocEntry(
                    path=path,
                    kind=kind,
                    title=path[-1],
                    source_url=urljoin(raw.source_url, href) if raw.source_url and href else None,
                ))

        if sections == 0:
            raise ParseError(raw.identity, "no item sections found in all.html", raw.content)

        return entries

    def suggest_packages(self) -> List[str]:
        if not self.project_dir:
            return []
        return [dep.name for dep in ProjectDetector(self.project_dir).detect()]


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
