# apbrowse/links.py
"""
Link discovery in rendered documents.

A document line is clickable when it holds a quoted JSON string starting
with https://, such as:

    "outbox": "https://example.test/users/alice/outbox",
"""

import json
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

# A JSON string literal whose content starts with the secure scheme.
LINK_PATTERN = re.compile(r'"(https://(?:[^"\\]|\\.)*)"')


@dataclass(frozen=True)
class LineTarget:
    """
    What a document line points at.

    Attributes:
        text: The trimmed line
        uri: First secure URI on the line, if any
        error: Why the quoted URI could not be decoded, if it could not
    """
    text: str
    uri: Optional[str] = None
    error: Optional[str] = None


def _unquote(literal: str) -> str:
    """Decode the body of a JSON string literal."""
    return json.loads(f'"{literal}"')


def extract_link(lines: Sequence[str], index: int) -> Optional[LineTarget]:
    """
    Resolve the line at index to a link target.

    Returns None when index is outside the document.
    """
    if index < 0 or index >= len(lines):
        return None

    text = lines[index].strip()
    match = LINK_PATTERN.search(text)
    if not match:
        return LineTarget(text=text)

    try:
        return LineTarget(text=text, uri=_unquote(match.group(1)))
    except ValueError as e:
        return LineTarget(text=text, error=str(e))


def find_links(text: str) -> List[str]:
    """All distinct secure URIs in a document, in order of appearance."""
    seen = set()
    links = []
    for match in LINK_PATTERN.finditer(text):
        try:
            uri = _unquote(match.group(1))
        except ValueError:
            continue
        if uri not in seen:
            seen.add(uri)
            links.append(uri)
    return links
