from __future__ import annotations

from flask import current_app
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from bmm.extensions import db
from bmm.services.scopes import BookmarkScope


_CONFLICT_AWARE_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def _insert_ignoring_conflicts(table, rows: list[dict]) -> None:
    if not rows:
        return
    dialect = db.session.get_bind().dialect.name
    insert_factory = _CONFLICT_AWARE_INSERTS.get(dialect)
    if insert_factory is not None:
        db.session.execute(insert_factory(table).values(rows).on_conflict_do_nothing())
        return

    bookmark_ids = {row["bookmark_id"] for row in rows}
    existing = set(
        db.session.execute(
            select(table.c.bookmark_id, table.c.tag_id).where(
                table.c.bookmark_id.in_(bookmark_ids)
            )
        ).all()
    )
    missing = [
        row for row in rows if (row["bookmark_id"], row["tag_id"]) not in existing
    ]
    if missing:
        db.session.execute(table.insert(), missing)


def full_set_bookmark_tags(
    scope: BookmarkScope, bookmark_id: int, tag_ids
) -> list[int] | None:
    """Make the tag links of ``bookmark_id`` exactly ``tag_ids``.

    ``None`` leaves the links untouched; any list, the empty one included, is
    reconciled. Ids the scope does not own are dropped silently. The caller
    owns the transaction.
    """
    if tag_ids is None:
        return None

    requested = list(dict.fromkeys(tag_ids))
    valid_ids = scope.filter_tag_ids(requested)
    if len(valid_ids) != len(requested):
        current_app.logger.debug(
            "Dropped tag ids %s for %s bookmark %s",
            sorted(set(requested) - set(valid_ids)),
            scope.name,
            bookmark_id,
        )

    table = scope.link_table
    _insert_ignoring_conflicts(
        table, [{"bookmark_id": bookmark_id, "tag_id": tag_id} for tag_id in valid_ids]
    )
    db.session.execute(
        delete(table).where(
            table.c.bookmark_id == bookmark_id,
            table.c.tag_id.not_in(valid_ids),
        )
    )
    return valid_ids


def related_tag_ids(scope: BookmarkScope, bookmark_ids) -> dict[int, list[int]]:
    ids = list(bookmark_ids)
    mapping: dict[int, list[int]] = {bookmark_id: [] for bookmark_id in ids}
    if not ids:
        return mapping
    table = scope.link_table
    rows = db.session.execute(
        select(table.c.bookmark_id, table.c.tag_id)
        .where(table.c.bookmark_id.in_(ids))
        .order_by(table.c.bookmark_id, table.c.tag_id)
    ).all()
    for bookmark_id, tag_id in rows:
        mapping.setdefault(bookmark_id, []).append(tag_id)
    return mapping
