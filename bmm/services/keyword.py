from __future__ import annotations

from sqlalchemy import or_


def keyword_filter(model, keyword: str | None):
    """Case-insensitive substring match over name, url and pinyin.

    Returns ``None`` for an empty keyword so callers can skip the filter.
    """
    value = (keyword or "").strip()
    if not value:
        return None
    return or_(
        model.name.icontains(value, autoescape=True),
        model.url.icontains(value, autoescape=True),
        model.pinyin.icontains(value, autoescape=True),
    )
