import logging
import re
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Protocol, Self
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from bitly_cli.services.bitly_client import Response

logger = logging.getLogger(__name__)


class RequestClient(Protocol):
    """Anything that can talk to the API, normally a BitlyClient"""

    def request(
        self, path: str, method: str = "GET", params: dict[str, Any] | None = None
    ) -> Response: ...


# "/v4/groups/abc/bitlinks" -> "/groups/abc/bitlinks"
_API_VERSION_PREFIX = re.compile(r"^/v\d+(?=/)")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse the API's timestamps, e.g. 2020-01-02T23:51:47+0000.

    Values without an offset are taken as UTC. Unreadable values are dropped
    like missing ones.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S%z")
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("ignoring unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _group_guid(references: dict[str, Any] | None) -> str | None:
    group_url = (references or {}).get("group")
    if not group_url:
        return None
    return urlsplit(group_url).path.rstrip("/").rsplit("/", 1)[-1] or None


class Deeplink(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_uri_path: str | None = None
    install_type: str | None = None
    install_url: str | None = None
    app_id: str | None = None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> Self:
        return cls(
            app_uri_path=data.get("app_uri_path"),
            install_type=data.get("install_type"),
            install_url=data.get("install_url"),
            app_id=data.get("app_id"),
        )

    def to_data(self) -> dict[str, str | None]:
        return self.model_dump()


class Bitlink(BaseModel):
    """A shortened link.

    The API hands out several views of the same record (full, public via
    /expand, and list entries); every field is optional so they all fit here.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    link: str | None = None
    long_url: str | None = None
    title: str | None = None
    created_at: datetime | None = None
    archived: bool | None = None
    tags: list[str] = Field(default_factory=list)
    custom_bitlinks: list[str] = Field(default_factory=list)
    deeplinks: list[Deeplink] = Field(default_factory=list)
    # from references.group
    group_guid: str | None = None
    client: Any = Field(default=None, exclude=True, repr=False)

    def __str__(self):
        return f"<Bitlink: {self.id} -> {self.long_url}>"

    # compare the record itself, not which client fetched it
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitlink):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def __hash__(self) -> int:
        return hash((self.id, self.link, self.long_url))

    @classmethod
    def from_data(cls, data: dict[str, Any], client: RequestClient | None = None) -> Self:
        return cls(
            id=data.get("id"),
            link=data.get("link"),
            long_url=data.get("long_url"),
            title=data.get("title"),
            created_at=parse_timestamp(data.get("created_at")),
            archived=data.get("archived"),
            tags=data.get("tags") or [],
            custom_bitlinks=data.get("custom_bitlinks") or [],
            deeplinks=[Deeplink.from_data(d) for d in data.get("deeplinks") or []],
            group_guid=_group_guid(data.get("references")),
            client=client,
        )

    @classmethod
    def shorten(
        cls,
        *,
        client: RequestClient,
        long_url: str,
        group_guid: str | None = None,
        domain: str | None = None,
    ) -> Self:
        response = client.request(
            path="/shorten",
            method="POST",
            params={"long_url": long_url, "group_guid": group_guid, "domain": domain},
        )
        return cls.from_data(response.json(), client=client)

    @classmethod
    def create(
        cls,
        *,
        client: RequestClient,
        long_url: str,
        group_guid: str | None = None,
        domain: str | None = None,
        title: str | None = None,
        tags: list[str] | None = None,
        deeplinks: list[Deeplink] | None = None,
    ) -> Self:
        response = client.request(
            path="/bitlinks",
            method="POST",
            params={
                "long_url": long_url,
                "group_guid": group_guid,
                "domain": domain,
                "title": title,
                "tags": tags,
                "deeplinks": deeplinks,
            },
        )
        return cls.from_data(response.json(), client=client)

    @classmethod
    def fetch(cls, *, client: RequestClient, bitlink: str) -> Self:
        response = client.request(path=f"/bitlinks/{bitlink}")
        return cls.from_data(response.json(), client=client)

    @classmethod
    def expand(cls, *, client: RequestClient, bitlink: str) -> Self:
        """Public view of a bitlink: only id, link, long_url and created_at are set"""
        response = client.request(
            path="/expand", method="POST", params={"bitlink_id": bitlink}
        )
        return cls.from_data(response.json(), client=client)

    # keep last: the name shadows the builtin for annotations further down the class body
    @classmethod
    def list(cls, *, client: RequestClient, group_guid: str) -> "BitlinkList":
        path = f"/groups/{group_guid}/bitlinks"
        response = client.request(path=path)
        return BitlinkList.from_response(client=client, response=response, path=path)


class BitlinkList(BaseModel):
    """One page of bitlinks.

    Adjacent pages are fetched from `path` with a `page` query parameter worked
    out from `page`; the query string of next_url/prev_url is not used.
    """

    items: list[Bitlink] = Field(default_factory=list)
    next_url: str | None = None
    prev_url: str | None = None
    total: int | None = None
    page: int | None = None
    size: int | None = None
    path: str | None = None
    client: Any = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_response(
        cls,
        *,
        client: RequestClient,
        response: Response,
        path: str | None = None,
        items: list[Bitlink] | None = None,
    ) -> Self:
        data = response.json()
        pagination = data.get("pagination") or {}
        if items is None:
            items = [Bitlink.from_data(link, client=client) for link in data.get("links") or []]
        return cls(
            items=items,
            next_url=pagination.get("next"),
            prev_url=pagination.get("prev"),
            total=pagination.get("total"),
            page=pagination.get("page"),
            size=pagination.get("size"),
            path=path,
            client=client,
        )

    def __iter__(self) -> Iterator[Bitlink]:  # type: ignore[override]
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    # an empty page is still a page; only next_page()/prev_page() return None
    def __bool__(self) -> bool:
        return True

    def has_next_page(self) -> bool:
        return bool(self.next_url)

    def has_prev_page(self) -> bool:
        return bool(self.prev_url)

    def next_page(self) -> Self | None:
        if not self.has_next_page():
            return None
        return self._fetch_page((self.page or 1) + 1)

    def prev_page(self) -> Self | None:
        if not self.has_prev_page():
            return None
        return self._fetch_page((self.page or 1) - 1)

    def iter_pages(self) -> Iterator[Self]:
        page: Self | None = self
        while page is not None:
            yield page
            page = page.next_page()

    def _base_path(self) -> str:
        if self.path:
            return self.path
        url = self.next_url or self.prev_url or ""
        return _API_VERSION_PREFIX.sub("", urlsplit(url).path)

    def _fetch_page(self, page: int) -> Self:
        path = self._base_path()
        response = self.client.request(path=path, params={"page": str(page)})
        return type(self).from_response(client=self.client, response=response, path=path)
