import pytest

from bmm.services.errors import ValidationError
from bmm.services.queries import (
    UNSET,
    BookmarkDraft,
    BookmarkPatch,
    parse_bool,
    parse_find_query,
)


def test_parse_bool_reads_text_flags():
    assert parse_bool("false") is False
    assert parse_bool("0") is False
    assert parse_bool("TRUE") is True
    assert parse_bool(1) is True
    assert parse_bool(None) is False
    assert parse_bool(None, default=True) is True


def test_pinned_flag_in_payloads_is_parsed_not_truthy():
    assert BookmarkPatch.from_payload(1, {"is_pinned": "false"}).is_pinned is False
    assert BookmarkPatch.from_payload(1, {"is_pinned": "1"}).is_pinned is True
    assert BookmarkPatch.from_payload(1, {"is_pinned": None}).is_pinned is None
    assert BookmarkPatch.from_payload(1, {}).is_pinned is UNSET

    draft = BookmarkDraft.from_payload(
        {"name": "A", "url": "https://a.example", "is_pinned": "0"}
    )
    assert draft.is_pinned is False


def test_parse_find_query_reads_lists_and_restores_plus_sign():
    query = parse_find_query(
        {"tag_ids": "1, 2;3", "tag_names": "dev,docs", "sorter_key": " createTime"},
        default_limit=20,
    )

    assert query.tag_ids == [1, 2, 3]
    assert query.tag_names == ["dev", "docs"]
    assert query.sorter_key == "+createTime"
    assert (query.page, query.limit) == (1, 20)

    with pytest.raises(ValidationError):
        parse_find_query({"page": "abc"}, default_limit=20)
