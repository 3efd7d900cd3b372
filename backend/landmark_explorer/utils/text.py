"""Text clean-up for model output shown in plain-text widgets and spoken by TTS."""

from __future__ import annotations

import re

# Emphasis markup the models keep emitting despite being asked not to:
# asterisks and backticks anywhere, and doubled underscores / tildes.
_EMPHASIS_RE = re.compile(r"[*`]+|_{2,}|~{2,}")


def sanitize_text(text: str) -> str:
    """Strip emphasis markup. Applied until nothing changes, so it is idempotent."""
    previous = None
    current = text or ""
    while current != previous:
        previous = current
        current = _EMPHASIS_RE.sub("", current)
    return current.strip()
