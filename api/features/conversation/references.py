"""Extraction of the trailing citation block from assistant answers.

An answer may end with a block of quoted markdown links::

    > [1]. [Install guide](https://docs.example.com/install)
    > [2]. [FAQ](https://docs.example.com/faq)

The quote sigil may also appear in its JSON-escaped form ``\\u003e``. Only
the block that runs to the end of the text counts; citation-shaped lines
earlier in the answer (quoted examples and the like) are ignored.

The block is found by walking lines backwards from the end of the text, so
extraction is linear in the size of the answer. One reference per line: the
name runs to the first ``](`` and the URL to the last ``)`` of the line.
"""
import re
from typing import List, Optional, Tuple

from api.features.conversation.models import ConversationReferenceModel

_QUOTE = r"(?:>|\\u003e)"

# Everything up to the opening bracket of the name.
_PREFIX_RE = re.compile(rf"{_QUOTE}\s*\[(\d+)\]\.\s*\[")

_Reference = Tuple[str, str, str]


def _parse_line(line: str) -> Optional[_Reference]:
    """Parse one stripped line into ``(ordinal, name, url)`` or None."""
    match = _PREFIX_RE.match(line)
    if match is None or not line.endswith(")"):
        return None
    rest = line[match.end():-1]
    split = rest.find("](")
    if split < 0:
        return None
    return match.group(1), rest[:split], rest[split + 2:]


def _trailing_block(text: str) -> Tuple[int, List[_Reference]]:
    """Offset where the trailing block starts and its references in source order."""
    start = len(text)
    offset = len(text)
    found: List[_Reference] = []
    for line in reversed(text.splitlines(keepends=True)):
        offset -= len(line)
        stripped = line.strip()
        if not stripped:
            continue
        parsed = _parse_line(stripped)
        if parsed is None:
            break
        found.append(parsed)
        start = offset
    found.reverse()
    return start, found


def find_reference_block(text: str) -> Optional[str]:
    """Return the trailing reference block of ``text``, or None."""
    if not text:
        return None
    start, found = _trailing_block(text)
    if not found:
        return None
    return text[start:]


def extract_references(
    conversation_id: str,
    app_id: str,
    text: str,
    *,
    message_id: Optional[str] = None,
) -> List[ConversationReferenceModel]:
    """Parse the trailing reference block of ``text`` into references.

    Returns an empty list when the text has no trailing block. The first
    line that is neither blank nor a reference ends the block; ``position``
    follows the source order.
    """
    if not text:
        return []
    _, found = _trailing_block(text)
    return [
        ConversationReferenceModel(
            conversation_id=conversation_id,
            app_id=app_id,
            message_id=message_id,
            position=position,
            ordinal=ordinal,
            name=name,
            url=url,
        )
        for position, (ordinal, name, url) in enumerate(found)
    ]
