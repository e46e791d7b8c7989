import hashlib
import secrets
from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from bmm.extensions import db, login_manager


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


user_bookmark_tags = db.Table(
    "user_bookmark_tags",
    db.Column(
        "bookmark_id",
        db.Integer,
        db.ForeignKey("user_bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "tag_id",
        db.Integer,
        db.ForeignKey("user_tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

public_bookmark_tags = db.Table(
    "public_bookmark_tags",
    db.Column(
        "bookmark_id",
        db.Integer,
        db.ForeignKey("public_bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "tag_id",
        db.Integer,
        db.ForeignKey("public_tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))


class ApiToken(db.Model):
    __tablename__ = "api_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    name = db.Column(db.String(120), nullable=False)
    token_hash = db.Column(db.String(128), nullable=False, unique=True)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User", backref="api_tokens")

    @staticmethod
    def issue_token(prefix="bmm"):
        token = f"{prefix}_{secrets.token_urlsafe(32)}"
        token_hash = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return token, token_hash


class TagColumns:
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def as_dict(self):
        return {"id": self.id, "name": self.name, "sort_order": self.sort_order}


class UserTag(TagColumns, db.Model):
    __tablename__ = "user_tags"

    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_user_tag_user_name"),
    )


class PublicTag(TagColumns, db.Model):
    __tablename__ = "public_tags"

    __table_args__ = (db.UniqueConstraint("name", name="uq_public_tag_name"),)


class BookmarkColumns:
    """Columns shared by the user and public bookmark tables.

    ``updated_at`` has no ``onupdate`` hook: the repository bumps it on
    scalar writes only, so manual re-sorting leaves it untouched.
    """

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    url = db.Column(db.Text, nullable=False)
    pinyin = db.Column(db.String(512), nullable=True)
    icon = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def as_dict(self, related_tag_ids=None):
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "pinyin": self.pinyin,
            "icon": self.icon,
            "description": self.description,
            "is_pinned": bool(self.is_pinned),
            "sort_order": self.sort_order,
            "related_tag_ids": list(related_tag_ids or []),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class UserBookmark(BookmarkColumns, db.Model):
    __tablename__ = "user_bookmarks"

    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )

    __table_args__ = (
        db.Index("ix_user_bookmark_user_order", "user_id", "sort_order"),
    )

    def as_dict(self, related_tag_ids=None):
        payload = super().as_dict(related_tag_ids)
        payload["user_id"] = self.user_id
        return payload


class PublicBookmark(BookmarkColumns, db.Model):
    __tablename__ = "public_bookmarks"
