from __future__ import annotations

from flask import Response, current_app, g, jsonify, request
from flask_login import login_required, login_user, logout_user

from bmm.api import api_bp
from bmm.extensions import db
from bmm.models import ApiToken, User
from bmm.services.errors import BookmarkServiceError, ValidationError
from bmm.services.export import EXPORT_CONTENT_TYPE, export_filename
from bmm.services.queries import (
    BookmarkDraft,
    BookmarkPatch,
    parse_bool,
    parse_find_query,
    parse_id_list,
)
from bmm.services.security import api_auth_required, bookmark_space
from bmm.services.tags import list_tags


SPACE = "<any(user, public):space>"


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


@api_bp.errorhandler(BookmarkServiceError)
def handle_service_error(exc: BookmarkServiceError):
    return jsonify({"error": exc.message}), exc.status_code


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "bmm"})


@api_bp.route("/auth/bootstrap-admin", methods=["POST"])
def bootstrap_admin_api():
    if User.query.count() > 0:
        return jsonify({"error": "bootstrap already completed"}), 409

    payload = _json_payload()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400

    admin = User(username=username, is_admin=True, is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return jsonify({"status": "created", "user_id": admin.id}), 201


def _check_credentials(payload: dict):
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return None
    return user


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _json_payload()
    user = _check_credentials(payload)
    if not user:
        return jsonify({"error": "invalid credentials"}), 401

    token_name = (payload.get("token_name") or "bmm API token").strip()
    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=user.id, name=token_name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/auth/login", methods=["POST"])
def login_api():
    user = _check_credentials(_json_payload())
    if not user:
        return jsonify({"error": "invalid credentials"}), 401
    login_user(user)
    return jsonify({"status": "signed_in", "user_id": user.id})


@api_bp.route("/auth/logout", methods=["POST"])
@login_required
def logout_api():
    logout_user()
    return jsonify({"status": "signed_out"})


@api_bp.route("/admin/users", methods=["POST"])
@api_auth_required(admin=True)
def admin_create_user():
    payload = _json_payload()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    is_admin = parse_bool(payload.get("is_admin"), default=False)

    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"error": "username already exists"}), 409

    user = User(username=username, is_admin=is_admin, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return jsonify({"status": "created", "user_id": user.id}), 201


@api_bp.route(f"/{SPACE}/tags", methods=["GET"])
@bookmark_space()
def tags_list():
    tags = list_tags(g.repository.scope)
    return jsonify({"items": [tag.as_dict() for tag in tags]})


@api_bp.route(f"/{SPACE}/bookmarks", methods=["GET"])
@bookmark_space()
def bookmarks_find():
    query = parse_find_query(
        request.args, current_app.config["DEFAULT_BOOKMARK_PAGESIZE"]
    )
    return jsonify(g.repository.find_many(query))


@api_bp.route(f"/{SPACE}/bookmarks", methods=["POST"])
@bookmark_space(write=True)
def bookmarks_create():
    draft = BookmarkDraft.from_payload(_json_payload())
    return jsonify(g.repository.insert(draft)), 201


@api_bp.route(f"/{SPACE}/bookmarks/<int:bookmark_id>", methods=["GET"])
@bookmark_space()
def bookmarks_get(bookmark_id: int):
    return jsonify(g.repository.query(bookmark_id))


@api_bp.route(f"/{SPACE}/bookmarks/<int:bookmark_id>", methods=["PATCH"])
@bookmark_space(write=True)
def bookmarks_update(bookmark_id: int):
    patch = BookmarkPatch.from_payload(bookmark_id, _json_payload())
    return jsonify(g.repository.update(patch))


@api_bp.route(f"/{SPACE}/bookmarks/<int:bookmark_id>", methods=["DELETE"])
@bookmark_space(write=True)
def bookmarks_delete(bookmark_id: int):
    return jsonify({"status": "deleted", "bookmark": g.repository.delete(bookmark_id)})


@api_bp.route(f"/{SPACE}/bookmarks/delete-many", methods=["POST"])
@bookmark_space(write=True)
def bookmarks_delete_many():
    ids = parse_id_list(_json_payload().get("ids"), "ids")
    return jsonify(g.repository.delete_many(ids))


@api_bp.route(f"/{SPACE}/bookmarks/sort", methods=["POST"])
@bookmark_space(write=True)
def bookmarks_sort():
    orders = _json_payload().get("orders")
    if not isinstance(orders, list):
        raise ValidationError("orders must be a list of {id, order}")
    return jsonify(g.repository.sort(orders))


@api_bp.route(f"/{SPACE}/bookmarks/reorder", methods=["POST"])
@bookmark_space(write=True)
def bookmarks_reorder():
    payload = _json_payload()
    ids = parse_id_list(payload.get("ids"), "ids")
    orders = g.repository.reorder(
        ids, has_filter=parse_bool(payload.get("has_filter"))
    )
    return jsonify({"orders": orders})


@api_bp.route(f"/{SPACE}/bookmarks/random", methods=["GET"])
@bookmark_space()
def bookmarks_random():
    return jsonify(g.repository.random())


@api_bp.route(f"/{SPACE}/bookmarks/recent", methods=["GET"])
@bookmark_space()
def bookmarks_recent():
    return jsonify(g.repository.recent())


@api_bp.route(f"/{SPACE}/bookmarks/total", methods=["GET"])
@bookmark_space()
def bookmarks_total():
    return jsonify({"total": g.repository.total()})


@api_bp.route(f"/{SPACE}/bookmarks/search", methods=["GET"])
@bookmark_space()
def bookmarks_search():
    return jsonify(g.repository.search(request.args.get("q")))


@api_bp.route(f"/{SPACE}/bookmarks/export", methods=["GET"])
@bookmark_space()
def bookmarks_export():
    payload = g.repository.export_html()
    filename = export_filename(g.space)
    return Response(
        payload,
        content_type=EXPORT_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api_bp.route(f"/{SPACE}/bookmarks/import", methods=["POST"])
@bookmark_space(write=True)
def bookmarks_import():
    upload = request.files.get("file")
    if not upload:
        raise ValidationError("file field is required")
    html = upload.read().decode("utf-8", errors="ignore")
    return jsonify(g.repository.import_html(html))
