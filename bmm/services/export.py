"""Netscape bookmark-file export.

Tags are exported as folders. A bookmark with several tags appears in each of
their folders; bookmarks without a known tag go to a trailing "untagged"
folder. Output depends only on the input rows, so exporting the same data
twice yields identical bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from dateutil import parser as dt_parser


MILLISECONDS_THRESHOLD = 10_000_000_000
EXPORT_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass
class ExportItem:
    name: str
    url: str
    created_at: object = None
    updated_at: object = None


@dataclass
class ExportFolder:
    name: str
    bookmarks: list[ExportItem] = field(default_factory=list)


def escape_html(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _parse_unix_seconds(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, (int, float)):
        if value > MILLISECONDS_THRESHOLD:
            return int(value // 1000)
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return _parse_unix_seconds(dt_parser.parse(value))
        except (ValueError, OverflowError):
            return None
    return None


def to_unix_seconds(*candidates, now: datetime | None = None) -> int:
    """First candidate that parses as a timestamp, else ``now``."""
    for candidate in candidates:
        seconds = _parse_unix_seconds(candidate)
        if seconds is not None:
            return seconds
    return _parse_unix_seconds(now or datetime.now(timezone.utc))


def group_bookmarks_by_tag(
    tags, bookmarks, untagged_name: str
) -> list[ExportFolder]:
    """Bucket ``(item, tag_ids)`` pairs into folders in tag order.

    ``tags`` is an ordered list of ``(id, name)``. Tag ids missing from it are
    ignored; an item left with no tag lands in the untagged folder.
    """
    tag_names = dict(tags)
    buckets: dict[int, list[ExportItem]] = {}
    untagged: list[ExportItem] = []

    for item, tag_ids in bookmarks:
        known = [tag_id for tag_id in tag_ids if tag_id in tag_names]
        if not known:
            untagged.append(item)
            continue
        for tag_id in dict.fromkeys(known):
            buckets.setdefault(tag_id, []).append(item)

    folders = [
        ExportFolder(name=name, bookmarks=buckets[tag_id])
        for tag_id, name in tags
        if buckets.get(tag_id)
    ]
    if untagged:
        folders.append(ExportFolder(name=untagged_name, bookmarks=untagged))
    return folders


def build_bookmark_html(
    title: str,
    folder_name: str,
    folders: list[ExportFolder],
    now: datetime | None = None,
) -> str:
    safe_title = escape_html(title)
    rendered_folders: list[tuple[str, int, list[str]]] = []

    for folder in folders:
        entries = []
        newest = 0
        for bookmark in folder.bookmarks:
            add_date = to_unix_seconds(bookmark.created_at, bookmark.updated_at, now=now)
            newest = max(newest, add_date)
            label = escape_html(bookmark.name or bookmark.url)
            entries.append(
                f'      <DT><A HREF="{escape_html(bookmark.url)}" '
                f'ADD_DATE="{add_date}">{label}</A>'
            )
        rendered_folders.append((escape_html(folder.name), newest, entries))

    if rendered_folders:
        root_date = max(folder_date for _, folder_date, _ in rendered_folders)
    else:
        root_date = to_unix_seconds(now=now)

    lines = [
        "<!DOCTYPE NETSCAPE-Bookmark-file-1>",
        '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
        f"<TITLE>{safe_title}</TITLE>",
        f"<H1>{safe_title}</H1>",
        "<DL><p>",
        f'  <DT><H3 ADD_DATE="{root_date}">{escape_html(folder_name)}</H3>',
        "  <DL><p>",
    ]
    for name, folder_date, entries in rendered_folders:
        lines.append(f'    <DT><H3 ADD_DATE="{folder_date}">{name}</H3>')
        lines.append("    <DL><p>")
        lines.extend(entries)
        lines.append("    </DL><p>")
    lines.append("  </DL><p>")
    lines.append("</DL><p>")
    return "\n".join(lines)


def export_filename(space: str, now: datetime | None = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{space}-bookmarks-{moment.strftime('%Y-%m-%dT%H-%M-%S')}.html"
