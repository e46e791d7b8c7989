import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


def _int_list(raw: str) -> tuple[int, ...]:
    return tuple(int(part) for part in raw.split(",") if part.strip())


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'bmm.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BOOKMARK_PAGE_SIZES = _int_list(
        os.environ.get("BOOKMARK_PAGE_SIZES", "20,50,100,300,500")
    )
    DEFAULT_BOOKMARK_PAGESIZE = int(os.environ.get("DEFAULT_BOOKMARK_PAGESIZE", "20"))
    BOOKMARK_SEARCH_LIMIT = int(os.environ.get("BOOKMARK_SEARCH_LIMIT", "100"))
    EXPORT_ROOT_FOLDER = os.environ.get("EXPORT_ROOT_FOLDER", "bmm-export")
    EXPORT_UNTAGGED_FOLDER = os.environ.get("EXPORT_UNTAGGED_FOLDER", "未分类")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
