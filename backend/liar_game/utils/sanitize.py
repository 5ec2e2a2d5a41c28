"""
Input sanitization for user supplied free text (room titles, descriptions,
search keywords).

Pipeline order: HTML tags -> script schemes -> SQL metacharacters, repeated
until the text stops changing, then whitespace collapse, trim and truncate.
The output is a fixed point: ``sanitize(sanitize(x)) == sanitize(x)``.

This is defense in depth only; persistence goes through SQLAlchemy bound
parameters.
"""

import re

ROOM_TITLE_MAX_LENGTH = 100
ROOM_DESCRIPTION_MAX_LENGTH = 500
SEARCH_KEYWORD_MAX_LENGTH = 50

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_SCHEME_RE = re.compile(r"(?:javascript|vbscript)\s*:", re.IGNORECASE)
_SQL_COMMENT_RE = re.compile(r"--|/\*|\*/")
# Quotes, backticks, semicolons, stray angle brackets and C0/DEL control characters
_SQL_META_RE = re.compile(r"[\"'`;<>\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_html_tags(text: str) -> str:
    return _HTML_TAG_RE.sub("", text)


def strip_script_schemes(text: str) -> str:
    # "javajavascript:script:" gibi ic ice gecmis girdiler icin
    previous = None
    while previous != text:
        previous = text
        text = _SCRIPT_SCHEME_RE.sub("", text)
    return text


def strip_sql_metacharacters(text: str) -> str:
    text = _SQL_COMMENT_RE.sub("", text)
    return _SQL_META_RE.sub("", text)


def _removal_pass(text: str) -> str:
    text = strip_html_tags(text)
    text = strip_script_schemes(text)
    return strip_sql_metacharacters(text)


def sanitize(raw: str | None, max_length: int | None = None) -> str:
    """
    Clean a free-text value. Never raises; ``None`` or empty input gives "".

    Args:
        raw: user supplied text
        max_length: truncate to this many characters after cleaning
    """
    if not raw:
        return ""

    text = str(raw)
    # Her pass sadece karakter siler, bu yuzden dongu sonlanir
    previous = None
    while previous != text:
        previous = text
        text = _removal_pass(text)

    text = _WHITESPACE_RE.sub(" ", text).strip()

    if max_length is not None and len(text) > max_length:
        text = text[:max_length].rstrip()

    return text


def sanitize_room_title(title: str | None) -> str:
    return sanitize(title, ROOM_TITLE_MAX_LENGTH)


def sanitize_room_description(description: str | None) -> str:
    return sanitize(description, ROOM_DESCRIPTION_MAX_LENGTH)


def sanitize_search_keyword(keyword: str | None) -> str:
    return sanitize(keyword, SEARCH_KEYWORD_MAX_LENGTH)
