"""Value objects passed into the bookmark repository."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime

from bmm.services.errors import ValidationError


SORTER_MANUAL = "manual"
SORTER_KEYS = (
    SORTER_MANUAL,
    "+createTime",
    "-createTime",
    "+updateTime",
    "-updateTime",
)


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


def _to_int(value, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an integer") from None


def parse_id_list(raw, label: str = "ids") -> list[int]:
    """Accept a list of ids or a comma separated string of ids."""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        raw = [part for part in raw.replace(";", ",").split(",") if part.strip()]
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{label} must be a list of integers")
    return [_to_int(item, label) for item in raw]


def parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def parse_name_list(raw) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        raw = raw.replace(";", ",").split(",")
    return [str(item).strip() for item in raw if str(item).strip()]


@dataclass
class FindQuery:
    keyword: str | None = None
    tag_ids: list[int] = field(default_factory=list)
    tag_names: list[str] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    sorter_key: str = SORTER_MANUAL

    def validate(self, allowed_limits) -> "FindQuery":
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if self.limit not in allowed_limits:
            allowed = ", ".join(str(value) for value in allowed_limits)
            raise ValidationError(f"limit must be one of {allowed}")
        if self.sorter_key not in SORTER_KEYS:
            raise ValidationError(f"unknown sorter key {self.sorter_key!r}")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _sorter_from_arg(raw: str | None) -> str:
    if not raw:
        return SORTER_MANUAL
    # an unescaped "+" arrives as a space in query strings
    if raw.startswith(" "):
        raw = "+" + raw[1:]
    return raw.strip()


def parse_find_query(args, default_limit: int) -> FindQuery:
    """Build a FindQuery from request args (a MultiDict or plain dict)."""
    getlist = getattr(args, "getlist", None)

    def many(key):
        if getlist is not None:
            values = getlist(key)
            if len(values) > 1:
                return values
        return args.get(key)

    tag_ids = parse_id_list(many("tag_ids"), "tag_ids")
    tag_names = parse_name_list(many("tag_names"))
    page = _to_int(args.get("page") or 1, "page")
    limit = _to_int(args.get("limit") or default_limit, "limit")
    return FindQuery(
        keyword=(args.get("keyword") or "").strip() or None,
        tag_ids=tag_ids,
        tag_names=tag_names,
        page=page,
        limit=limit,
        sorter_key=_sorter_from_arg(args.get("sorter_key")),
    )


def _clean_required_text(value, label: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def _clean_optional_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class BookmarkDraft:
    name: str
    url: str
    pinyin: str | None = None
    icon: str | None = None
    description: str | None = None
    is_pinned: bool = False
    sort_order: int | None = None
    created_at: datetime | None = None
    related_tag_ids: list[int] | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "BookmarkDraft":
        sort_order = payload.get("sort_order")
        tag_ids = payload.get("related_tag_ids")
        return cls(
            name=_clean_required_text(payload.get("name"), "name"),
            url=_clean_required_text(payload.get("url"), "url"),
            pinyin=_clean_optional_text(payload.get("pinyin")),
            icon=_clean_optional_text(payload.get("icon")),
            description=_clean_optional_text(payload.get("description")),
            is_pinned=parse_bool(payload.get("is_pinned")),
            sort_order=None if sort_order is None else _to_int(sort_order, "sort_order"),
            related_tag_ids=None
            if tag_ids is None
            else parse_id_list(tag_ids, "related_tag_ids"),
        )


@dataclass
class BookmarkPatch:
    """Partial update. Fields left as ``UNSET`` are not written."""

    id: int
    name: object = UNSET
    url: object = UNSET
    pinyin: object = UNSET
    icon: object = UNSET
    description: object = UNSET
    is_pinned: object = UNSET
    sort_order: object = UNSET
    related_tag_ids: object = UNSET

    SCALAR_FIELDS = (
        "name",
        "url",
        "pinyin",
        "icon",
        "description",
        "is_pinned",
        "sort_order",
    )

    @classmethod
    def from_payload(cls, bookmark_id: int, payload: dict) -> "BookmarkPatch":
        known = {item.name for item in fields(cls)} - {"id"}
        values = {key: payload[key] for key in known if key in payload}

        if "name" in values:
            values["name"] = _clean_required_text(values["name"], "name")
        if "url" in values:
            values["url"] = _clean_required_text(values["url"], "url")
        for key in ("pinyin", "icon", "description"):
            if key in values:
                values[key] = _clean_optional_text(values[key])
        if "is_pinned" in values and values["is_pinned"] is not None:
            values["is_pinned"] = parse_bool(values["is_pinned"])
        if "sort_order" in values and values["sort_order"] is not None:
            values["sort_order"] = _to_int(values["sort_order"], "sort_order")
        if "related_tag_ids" in values:
            raw_tags = values["related_tag_ids"]
            values["related_tag_ids"] = (
                None if raw_tags is None else parse_id_list(raw_tags, "related_tag_ids")
            )
        return cls(id=bookmark_id, **values)

    def scalar_changes(self) -> dict:
        return {
            key: getattr(self, key)
            for key in self.SCALAR_FIELDS
            if getattr(self, key) is not UNSET
        }
