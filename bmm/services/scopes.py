"""Scope strategies for the bookmark repository.

A scope supplies everything that differs between the per-user space and the
shared public space: tables, the owner predicate, owner column values for new
rows and the tag validation hook. The repository and tag services are written
once against this interface.
"""

from __future__ import annotations

from bmm.models import (
    PublicBookmark,
    PublicTag,
    UserBookmark,
    UserTag,
    public_bookmark_tags,
    user_bookmark_tags,
)


class BookmarkScope:
    name = ""
    bookmark_model = None
    tag_model = None
    link_table = None

    def bookmark_filters(self) -> list:
        return []

    def tag_filters(self) -> list:
        return []

    def owner_values(self) -> dict:
        return {}

    @property
    def export_title(self) -> str:
        return f"bmm {self.name} bookmarks"

    def filter_tag_ids(self, tag_ids) -> list[int]:
        """Keep the ids of tags that exist in this scope, in request order."""
        wanted = [int(tag_id) for tag_id in dict.fromkeys(tag_ids or [])]
        if not wanted:
            return []
        model = self.tag_model
        rows = (
            model.query.with_entities(model.id)
            .filter(*self.tag_filters())
            .filter(model.id.in_(wanted))
            .all()
        )
        owned = {row.id for row in rows}
        return [tag_id for tag_id in wanted if tag_id in owned]


class PublicScope(BookmarkScope):
    name = "public"
    bookmark_model = PublicBookmark
    tag_model = PublicTag
    link_table = public_bookmark_tags


class UserScope(BookmarkScope):
    name = "user"
    bookmark_model = UserBookmark
    tag_model = UserTag
    link_table = user_bookmark_tags

    def __init__(self, user_id: int):
        self.user_id = user_id

    def bookmark_filters(self) -> list:
        return [UserBookmark.user_id == self.user_id]

    def tag_filters(self) -> list:
        return [UserTag.user_id == self.user_id]

    def owner_values(self) -> dict:
        return {"user_id": self.user_id}


def scope_for(space: str, user_id: int | None = None) -> BookmarkScope:
    if space == PublicScope.name:
        return PublicScope()
    if space == UserScope.name and user_id is not None:
        return UserScope(user_id)
    raise ValueError(f"unknown bookmark space {space!r}")
