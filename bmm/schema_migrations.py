from __future__ import annotations

from sqlalchemy import inspect, or_

from bmm.extensions import db
from bmm.models import PublicBookmark, UserBookmark
from bmm.services.pinyin import to_pinyin


def backfill_bookmark_search_keys() -> int:
    """Fill missing pinyin keys and manual sort orders on existing rows.

    Rows written before these columns existed, or by external tools, carry
    NULLs; new rows rank by id, so the backfill uses the id as well.
    """
    inspector = inspect(db.engine)
    touched = 0
    for model in (UserBookmark, PublicBookmark):
        if not inspector.has_table(model.__tablename__):
            continue
        columns = {column["name"] for column in inspector.get_columns(model.__tablename__)}
        if not {"pinyin", "sort_order"} <= columns:
            continue

        rows = model.query.filter(
            or_(model.pinyin.is_(None), model.pinyin == "", model.sort_order.is_(None))
        ).all()
        for row in rows:
            if not row.pinyin:
                row.pinyin = to_pinyin(row.name)
            if row.sort_order is None:
                row.sort_order = row.id
            touched += 1

    db.session.commit()
    return touched
