from datetime import datetime, timezone

from bmm.services.bookmark_import import parse_bookmark_html
from bmm.services.export import ExportFolder, ExportItem, build_bookmark_html


def test_parse_bookmark_html_handles_nested_netscape_structure():
    html = """
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
  <DT><H3>Root Folder</H3>
  <DL><p>
    <DT><A HREF="https://example.com/a" ADD_DATE="1704067200">A</A>
    <DT><H3>Inner Folder</H3>
    <DL><p>
      <DT><A HREF="https://example.com/b">B</A>
      <DT><A HREF="https://example.com/c#frag" ICON="data:image/png;base64,AAA">C</A>
    </DL><p>
  </DL><p>
  <DT><A HREF="https://example.com/root">Root Link</A>
</DL><p>
"""

    rows = parse_bookmark_html(html)

    assert [row.url for row in rows] == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c#frag",
        "https://example.com/root",
    ]
    assert rows[0].folders == ["Root Folder"]
    assert rows[0].add_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert rows[1].folders == ["Root Folder", "Inner Folder"]
    assert rows[1].add_date is None
    assert rows[2].icon == "data:image/png;base64,AAA"
    assert rows[3].folders == []


def test_parse_bookmark_html_keeps_empty_title_when_anchor_has_no_text():
    html = """
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
  <DT><A HREF="https://example.com/no-title"></A>
</DL><p>
"""

    rows = parse_bookmark_html(html)

    assert len(rows) == 1
    assert rows[0].url == "https://example.com/no-title"
    assert rows[0].title == ""


def test_parse_bookmark_html_without_list_returns_nothing():
    assert parse_bookmark_html("<html><body>nothing here</body></html>") == []


def test_exported_document_parses_back_with_unescaped_text():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    html = build_bookmark_html(
        "bmm user bookmarks",
        "bmm-export",
        [
            ExportFolder(
                name="R&D",
                bookmarks=[
                    ExportItem(
                        name="A & B <test>",
                        url="https://a.example/?q=1&x=2",
                        created_at=created,
                    )
                ],
            ),
            ExportFolder(
                name="未分类",
                bookmarks=[ExportItem(name="Plain", url="https://plain.example")],
            ),
        ],
    )

    rows = parse_bookmark_html(html)

    assert [(row.title, row.url) for row in rows] == [
        ("A & B <test>", "https://a.example/?q=1&x=2"),
        ("Plain", "https://plain.example"),
    ]
    assert rows[0].folders == ["bmm-export", "R&D"]
    assert rows[0].add_date == created
    assert rows[1].folders == ["bmm-export", "未分类"]


def test_parse_bookmark_html_keeps_folder_that_follows_a_link():
    html = (
        '<DL><p><DT><A HREF="https://x.example/a">A</A>\n'
        "<DT><H3>F</H3>\n"
        '<DL><p><DT><A HREF="https://x.example/b">B</A>\n'
        "</DL><p></DL><p>"
    )

    rows = parse_bookmark_html(html)

    assert [(row.url, row.folders) for row in rows] == [
        ("https://x.example/a", []),
        ("https://x.example/b", ["F"]),
    ]
