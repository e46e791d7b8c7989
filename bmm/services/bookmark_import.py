from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag


FOLDER_HEADINGS = ["h3", "h2", "h1"]


@dataclass
class ImportedBookmark:
    title: str
    url: str
    folders: list[str] = field(default_factory=list)
    add_date: datetime | None = None
    icon: str | None = None


def _parse_add_date(raw) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip().isdigit():
        return None
    seconds = int(raw.strip())
    if seconds > 10_000_000_000:
        seconds //= 1000
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _direct_child(dt: Tag, names) -> Tag | None:
    for node in dt.find_all(names):
        if isinstance(node, Tag) and node.find_parent("dt") is dt:
            return node
    return None


def _folder_list(dt: Tag) -> Tag | None:
    """The DL holding a folder's children: nested in the DT or right after it."""
    nested = dt.find("dl")
    if isinstance(nested, Tag):
        return nested
    sibling = dt.next_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            if sibling.name == "dl":
                return sibling
            if sibling.name == "dt":
                return None
        sibling = sibling.next_sibling
    return None


def _walk(dl: Tag, folders: list[str], out: list[ImportedBookmark]) -> None:
    for dt in dl.find_all("dt"):
        if not isinstance(dt, Tag) or dt.find_parent("dl") is not dl:
            continue

        anchor = _direct_child(dt, "a")
        href = anchor.get("href") if anchor is not None else None
        if isinstance(href, str) and href.strip():
            icon = anchor.get("icon")
            out.append(
                ImportedBookmark(
                    title=anchor.get_text(strip=True),
                    url=href.strip(),
                    folders=list(folders),
                    add_date=_parse_add_date(anchor.get("add_date")),
                    icon=icon if isinstance(icon, str) and icon else None,
                )
            )

        # lxml folds a folder DT that follows an unclosed link DT into the
        # link's DT, so the same DT may also carry a heading and its DL
        heading = _direct_child(dt, FOLDER_HEADINGS)
        children = _folder_list(dt)
        if heading is not None and children is not None:
            _walk(children, folders + [heading.get_text(strip=True)], out)


def parse_bookmark_html(html: str) -> list[ImportedBookmark]:
    """Flatten a Netscape bookmark file into entries with their folder path."""
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    if not isinstance(root, Tag):
        return []
    entries: list[ImportedBookmark] = []
    _walk(root, [], entries)
    return entries
