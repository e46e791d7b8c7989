from pypinyin import Style, lazy_pinyin


def to_pinyin(text: str | None) -> str:
    """Search key for ``text``: toneless pinyin syllables joined, lowercased.

    Non-Chinese runs pass through unchanged: ``"中文Docs"`` becomes
    ``"zhongwendocs"``.
    """
    if not text:
        return ""
    return "".join(lazy_pinyin(text, style=Style.NORMAL)).lower()
