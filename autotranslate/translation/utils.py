"""
Translation utility functions for chunking and JSON-encoded values.
"""

import json
import re
from typing import Any, List, Optional, Tuple

# DeepL rejects request bodies above 128 KiB; stay well below it
DEFAULT_MAX_CHARS_PER_REQUEST = 30000


def chunk_texts(
    texts: List[str],
    max_items: int,
    max_chars: int = DEFAULT_MAX_CHARS_PER_REQUEST,
) -> List[List[str]]:
    """
    Split texts into request-sized chunks, keeping order.

    A chunk ends when adding the next text would exceed max_items or
    max_chars. A single text longer than max_chars gets a chunk of its own.

    Args:
        texts: Texts to split
        max_items: Maximum texts per chunk
        max_chars: Maximum total characters per chunk

    Returns:
        List of chunks

    Example:
        >>> chunk_texts(["a", "b", "c"], max_items=2)
        [['a', 'b'], ['c']]
    """
    if not texts:
        return []

    chunks = []
    current_chunk: List[str] = []
    current_size = 0

    for text in texts:
        text_size = len(text) if text else 0

        # If adding this text would exceed a limit AND we have texts in the
        # current chunk, start a new chunk
        if current_chunk and (len(current_chunk) >= max_items or current_size + text_size > max_chars):
            chunks.append(current_chunk)
            current_chunk = [text]
            current_size = text_size
        else:
            current_chunk.append(text)
            current_size += text_size

    if current_chunk:
        chunks.append(current_chunk)

    return chunks


def decode_json_structure(text: str) -> Optional[Tuple[Any, dict]]:
    """
    Decode a string holding a JSON object or array.

    Returns:
        Tuple of (decoded structure, encoding style for encode_json_structure),
        or None when the text is not a JSON object/array
    """
    stripped = text.strip()
    if not stripped or stripped[0] not in '{[':
        return None
    try:
        decoded = json.loads(stripped)
    except ValueError:
        return None
    if not isinstance(decoded, (dict, list)):
        return None

    ensure_ascii = bool(re.search(r'\\u[0-9a-fA-F]{4}', stripped))
    # Keep whichever separator style reproduces the original text
    style = {'ensure_ascii': ensure_ascii, 'separators': (',', ':')}
    for separators in ((',', ':'), (', ', ': ')):
        if json.dumps(decoded, ensure_ascii=ensure_ascii, separators=separators) == stripped:
            style['separators'] = separators
            break
    return decoded, style


def encode_json_structure(value: Any, style: dict) -> str:
    """Inverse of decode_json_structure."""
    return json.dumps(value, ensure_ascii=style.get('ensure_ascii', False),
                      separators=style.get('separators', (',', ':')))
