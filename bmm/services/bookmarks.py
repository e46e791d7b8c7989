"""Bookmark repository, written once and instantiated per scope."""

from __future__ import annotations

from flask import current_app
from sqlalchemy import delete, func, or_, select

from bmm.extensions import db
from bmm.models import utcnow
from bmm.services.bookmark_import import parse_bookmark_html
from bmm.services.errors import DuplicateError, NotFoundError, ValidationError
from bmm.services.export import (
    ExportItem,
    build_bookmark_html,
    group_bookmarks_by_tag,
)
from bmm.services.keyword import keyword_filter
from bmm.services.pinyin import to_pinyin
from bmm.services.queries import (
    SORTER_MANUAL,
    UNSET,
    BookmarkDraft,
    BookmarkPatch,
    FindQuery,
)
from bmm.services.scopes import BookmarkScope
from bmm.services.sort_orders import reconcile_sort_orders
from bmm.services.tag_links import full_set_bookmark_tags, related_tag_ids
from bmm.services.tags import ensure_tag, list_tags, resolve_tag_names


class BookmarkRepository:
    def __init__(self, scope: BookmarkScope):
        self.scope = scope
        self.model = scope.bookmark_model

    # -- helpers -----------------------------------------------------------

    def _base_query(self):
        return self.model.query.filter(*self.scope.bookmark_filters())

    def _get_or_404(self, bookmark_id: int):
        bookmark = self._base_query().filter(self.model.id == bookmark_id).first()
        if not bookmark:
            raise NotFoundError()
        return bookmark

    def _manual_order(self):
        return [self.model.sort_order.desc(), self.model.updated_at.desc()]

    def _order_by(self, sorter_key: str):
        if sorter_key == SORTER_MANUAL:
            return self._manual_order()
        column = (
            self.model.updated_at if "update" in sorter_key else self.model.created_at
        )
        if sorter_key.startswith("-"):
            return [column.desc(), self.model.id.desc()]
        return [column.asc(), self.model.id.asc()]

    def _serialize(self, rows) -> list[dict]:
        rows = list(rows)
        tags_by_id = related_tag_ids(self.scope, [row.id for row in rows])
        return [row.as_dict(tags_by_id.get(row.id, [])) for row in rows]

    def _commit(self) -> None:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _find_duplicate(self, name: str, url: str):
        return (
            self._base_query()
            .filter(or_(self.model.url == url, self.model.name == name))
            .first()
        )

    # -- CRUD --------------------------------------------------------------

    def _add(self, draft: BookmarkDraft):
        if self._find_duplicate(draft.name, draft.url):
            raise DuplicateError()

        now = utcnow()
        bookmark = self.model(
            name=draft.name,
            url=draft.url,
            pinyin=draft.pinyin or to_pinyin(draft.name),
            icon=draft.icon,
            description=draft.description,
            is_pinned=draft.is_pinned,
            sort_order=draft.sort_order,
            created_at=draft.created_at or now,
            updated_at=draft.created_at or now,
            **self.scope.owner_values(),
        )
        db.session.add(bookmark)
        db.session.flush()
        if draft.sort_order is None:
            bookmark.sort_order = bookmark.id
        if draft.related_tag_ids:
            full_set_bookmark_tags(self.scope, bookmark.id, draft.related_tag_ids)
        return bookmark

    def insert(self, draft: BookmarkDraft) -> dict:
        try:
            bookmark = self._add(draft)
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        current_app.logger.info(
            "Inserted %s bookmark %s (%s)", self.scope.name, bookmark.id, bookmark.url
        )
        return self.query(bookmark.id)

    def query(self, bookmark_id: int) -> dict:
        return self._serialize([self._get_or_404(bookmark_id)])[0]

    def update(self, patch: BookmarkPatch) -> dict:
        bookmark = self._get_or_404(patch.id)
        changes = patch.scalar_changes()
        for key in ("name", "url"):
            if key in changes and not changes[key]:
                raise ValidationError(f"{key} is required")
        if "is_pinned" in changes and changes["is_pinned"] is None:
            raise ValidationError("is_pinned must be a boolean")

        try:
            if patch.related_tag_ids is not UNSET:
                full_set_bookmark_tags(self.scope, bookmark.id, patch.related_tag_ids)
            if changes:
                if ("name" in changes or "pinyin" in changes) and not changes.get(
                    "pinyin"
                ):
                    changes["pinyin"] = to_pinyin(changes.get("name", bookmark.name))
                for key, value in changes.items():
                    setattr(bookmark, key, value)
                bookmark.updated_at = utcnow()
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        return self.query(bookmark.id)

    def _delete_links(self, bookmark_ids: list[int]) -> None:
        table = self.scope.link_table
        db.session.execute(delete(table).where(table.c.bookmark_id.in_(bookmark_ids)))

    def delete(self, bookmark_id: int) -> dict:
        payload = self.query(bookmark_id)
        try:
            self._delete_links([bookmark_id])
            self._base_query().filter(self.model.id == bookmark_id).delete(
                synchronize_session=False
            )
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        current_app.logger.info("Deleted %s bookmark %s", self.scope.name, bookmark_id)
        return payload

    def delete_many(self, bookmark_ids) -> dict:
        ids = list(dict.fromkeys(bookmark_ids or []))
        if not ids:
            return {"deleted": 0}

        owned = [
            row.id
            for row in self._base_query()
            .with_entities(self.model.id)
            .filter(self.model.id.in_(ids))
            .all()
        ]
        if not owned:
            return {"deleted": 0}
        try:
            self._delete_links(owned)
            deleted = (
                self._base_query()
                .filter(self.model.id.in_(owned))
                .delete(synchronize_session=False)
            )
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        current_app.logger.info(
            "Deleted %s %s bookmarks", deleted, self.scope.name
        )
        return {"deleted": deleted}

    def sort(self, orders) -> dict:
        updated = 0
        try:
            for item in orders:
                updated += (
                    self._base_query()
                    .filter(self.model.id == int(item["id"]))
                    .update(
                        {self.model.sort_order: int(item["order"])},
                        synchronize_session=False,
                    )
                )
        except (KeyError, TypeError, ValueError):
            db.session.rollback()
            raise ValidationError("orders must be a list of {id, order}") from None
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        current_app.logger.info(
            "Updated sort order of %s %s bookmarks", updated, self.scope.name
        )
        return {"updated": updated}

    def reorder(self, bookmark_ids, has_filter: bool) -> list[dict]:
        """Persist a drag-reordered view given its ids top to bottom."""
        ids = list(dict.fromkeys(bookmark_ids or []))
        if not ids:
            return []
        rows = (
            self._base_query()
            .with_entities(self.model.id, self.model.sort_order)
            .filter(self.model.id.in_(ids))
            .all()
        )
        current = {row.id: row.sort_order for row in rows}
        displayed = [
            {"id": bookmark_id, "sort_order": current[bookmark_id]}
            for bookmark_id in ids
            if bookmark_id in current
        ]
        orders = reconcile_sort_orders(displayed, has_filter=has_filter)
        if orders:
            self.sort(orders)
        return orders

    # -- reads -------------------------------------------------------------

    def _find_filters(self, query: FindQuery) -> list:
        filters = list(self.scope.bookmark_filters())

        by_keyword = keyword_filter(self.model, query.keyword)
        if by_keyword is not None:
            filters.append(by_keyword)

        # unknown names are skipped; unknown ids still count, so they match nothing
        tag_ids = list(
            dict.fromkeys(
                list(query.tag_ids) + resolve_tag_names(self.scope, query.tag_names)
            )
        )
        if tag_ids:
            table = self.scope.link_table
            tagged = (
                select(table.c.bookmark_id)
                .where(table.c.tag_id.in_(tag_ids))
                .group_by(table.c.bookmark_id)
                .having(func.count(func.distinct(table.c.tag_id)) == len(tag_ids))
            )
            filters.append(self.model.id.in_(tagged))
        return filters

    def find_many(self, query: FindQuery | None = None) -> dict:
        query = (query or FindQuery()).validate(
            current_app.config["BOOKMARK_PAGE_SIZES"]
        )
        filters = self._find_filters(query)

        total = self.model.query.filter(*filters).count()
        rows = (
            self.model.query.filter(*filters)
            .order_by(*self._order_by(query.sorter_key))
            .offset(query.offset)
            .limit(query.limit)
            .all()
        )
        return {
            "list": self._serialize(rows),
            "total": total,
            "has_more": total > query.page * query.limit,
        }

    def random(self) -> dict:
        rows = (
            self._base_query()
            .order_by(func.random())
            .limit(current_app.config["DEFAULT_BOOKMARK_PAGESIZE"])
            .all()
        )
        return {"list": self._serialize(rows)}

    def recent(self) -> dict:
        rows = (
            self._base_query()
            .order_by(*self._manual_order())
            .limit(current_app.config["DEFAULT_BOOKMARK_PAGESIZE"])
            .all()
        )
        return {"list": self._serialize(rows)}

    def search(self, keyword: str | None) -> dict:
        by_keyword = keyword_filter(self.model, keyword)
        query = self._base_query()
        if by_keyword is not None:
            query = query.filter(by_keyword)
        rows = (
            query.order_by(*self._manual_order())
            .limit(current_app.config["BOOKMARK_SEARCH_LIMIT"])
            .all()
        )
        return {"list": self._serialize(rows)}

    def total(self) -> int:
        return self._base_query().count()

    # -- bookmark files ----------------------------------------------------

    def export_html(self, now=None) -> str:
        tags = [(tag.id, tag.name) for tag in list_tags(self.scope)]
        rows = self._base_query().order_by(*self._manual_order()).all()
        tags_by_id = related_tag_ids(self.scope, [row.id for row in rows])

        folders = group_bookmarks_by_tag(
            tags,
            [
                (
                    ExportItem(
                        name=row.name,
                        url=row.url,
                        created_at=row.created_at,
                        updated_at=row.updated_at,
                    ),
                    tags_by_id.get(row.id, []),
                )
                for row in rows
            ],
            untagged_name=current_app.config["EXPORT_UNTAGGED_FOLDER"],
        )
        return build_bookmark_html(
            title=self.scope.export_title,
            folder_name=current_app.config["EXPORT_ROOT_FOLDER"],
            folders=folders,
            now=now,
        )

    def import_html(self, html: str) -> dict:
        """Import a bookmark file; folders become tags.

        Repeated urls (one bookmark exported into several tag folders) merge
        into a single bookmark with all of those tags. Entries are inserted
        bottom-up so the first one in the file ranks highest.
        """
        ignored_folders = {
            current_app.config["EXPORT_ROOT_FOLDER"],
            current_app.config["EXPORT_UNTAGGED_FOLDER"],
        }
        merged: dict[str, dict] = {}
        entries = parse_bookmark_html(html)
        for entry in entries:
            item = merged.setdefault(entry.url, {"entry": entry, "tags": []})
            folder = next(
                (name for name in reversed(entry.folders) if name not in ignored_folders),
                None,
            )
            if folder and folder not in item["tags"]:
                item["tags"].append(folder)

        created = 0
        skipped = 0
        try:
            for item in reversed(list(merged.values())):
                entry = item["entry"]
                tag_ids = [ensure_tag(self.scope, name).id for name in item["tags"]]
                draft = BookmarkDraft(
                    name=entry.title or entry.url,
                    url=entry.url,
                    icon=entry.icon,
                    created_at=entry.add_date,
                    related_tag_ids=tag_ids or None,
                )
                try:
                    self._add(draft)
                except DuplicateError:
                    skipped += 1
                    current_app.logger.warning(
                        "Skipped duplicate %s bookmark %s", self.scope.name, entry.url
                    )
                    continue
                created += 1
        except Exception:
            db.session.rollback()
            raise
        self._commit()
        current_app.logger.info(
            "Imported %s %s bookmarks (%s skipped)", created, self.scope.name, skipped
        )
        return {"created": created, "skipped": skipped, "total": len(entries)}
