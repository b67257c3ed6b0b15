from __future__ import annotations

import re

STATUS_KIND = "status"
RESULT_KIND = "result"
MARKER_PATTERN = re.compile(r"<!--(status|result)-([A-Za-z0-9_.:-]+)-->")


def _marker(kind: str, distinct_id: str) -> str:
    if not distinct_id or "--" in distinct_id or ">" in distinct_id:
        raise ValueError(f"Distinct id cannot be embedded in a marker: {distinct_id!r}")
    return f"<!--{kind}-{distinct_id}-->"


def status_marker(distinct_id: str) -> str:
    return _marker(STATUS_KIND, distinct_id)


def result_marker(distinct_id: str) -> str:
    return _marker(RESULT_KIND, distinct_id)


def parse_markers(text: str, kind: str = STATUS_KIND) -> list[str]:
    """Return the distinct ids whose ``kind`` markers are present, in document order."""
    seen: list[str] = []
    for match in MARKER_PATTERN.finditer(text):
        if match.group(1) == kind and match.group(2) not in seen:
            seen.append(match.group(2))
    return seen


def replace_marker(text: str, marker: str, replacement: str) -> str:
    """Replace the first verbatim occurrence of ``marker``.

    Text without the marker comes back unchanged.
    """
    if marker not in text:
        return text
    return text.replace(marker, replacement, 1)
