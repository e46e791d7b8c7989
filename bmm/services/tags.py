from __future__ import annotations

from bmm.extensions import db
from bmm.services.scopes import BookmarkScope


def list_tags(scope: BookmarkScope):
    model = scope.tag_model
    return (
        model.query.filter(*scope.tag_filters())
        .order_by(model.sort_order.asc(), model.id.asc())
        .all()
    )


def resolve_tag_names(scope: BookmarkScope, names) -> list[int]:
    """Map tag names to ids; unknown names are skipped."""
    wanted = [name for name in dict.fromkeys(names or []) if name]
    if not wanted:
        return []
    model = scope.tag_model
    rows = model.query.filter(*scope.tag_filters()).filter(model.name.in_(wanted)).all()
    by_name = {row.name: row.id for row in rows}
    return [by_name[name] for name in wanted if name in by_name]


def ensure_tag(scope: BookmarkScope, name: str):
    model = scope.tag_model
    clean = (name or "").strip()
    tag = model.query.filter(*scope.tag_filters()).filter_by(name=clean).first()
    if not tag:
        tag = model(name=clean, **scope.owner_values())
        db.session.add(tag)
        db.session.flush()
    return tag
