"""
Structure walker for metadata values.

Metadata values are arbitrary trees: strings, numbers, lists, mappings, or
strings that themselves hold a JSON object/array. A value is first lifted into
a closed set of node types, every translatable leaf is gathered in document
order, the leaves are translated in as few provider requests as possible, and
the tree is lowered back with the translations substituted.

Node types:
    ScalarValue   - a string leaf
    SequenceValue - a list (or tuple) of nodes
    MappingValue  - an ordered mapping of key -> node
    EncodedValue  - a string holding JSON; wraps the parsed node and the
                    encoding style used to write it back
    OpaqueValue   - anything else (numbers, booleans, None, cycles), kept as is
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

from autotranslate.logger import get_logger
from autotranslate.translation.classifier import should_skip
from autotranslate.translation.utils import chunk_texts, decode_json_structure, encode_json_structure

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScalarValue:
    text: str


@dataclass(frozen=True)
class SequenceValue:
    items: Tuple["Value", ...]


@dataclass(frozen=True)
class MappingValue:
    entries: Tuple[Tuple[Any, "Value"], ...]


@dataclass(frozen=True)
class EncodedValue:
    inner: "Value"
    style: Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class OpaqueValue:
    value: Any


Value = Union[ScalarValue, SequenceValue, MappingValue, EncodedValue, OpaqueValue]


def lift(value: Any, _path: Optional[frozenset] = None) -> Value:
    """Turn a raw metadata value into a node tree."""
    path = _path or frozenset()

    if isinstance(value, str):
        decoded = decode_json_structure(value)
        if decoded is not None:
            structure, style = decoded
            return EncodedValue(inner=lift(structure, path), style=tuple(style.items()))
        return ScalarValue(value)

    if isinstance(value, (list, tuple, dict)):
        if id(value) in path:
            logger.warning("Cyclic metadata value found, keeping it untranslated")
            return OpaqueValue(value)
        inner_path = path | {id(value)}
        if isinstance(value, dict):
            return MappingValue(tuple((key, lift(item, inner_path)) for key, item in value.items()))
        return SequenceValue(tuple(lift(item, inner_path) for item in value))

    return OpaqueValue(value)


def is_translatable(text: str) -> bool:
    return bool(text.strip()) and not should_skip(text)


def gather_texts(node: Value, out: Optional[List[str]] = None) -> List[str]:
    """Collect translatable leaf texts in depth-first order."""
    if out is None:
        out = []
    if isinstance(node, ScalarValue):
        if is_translatable(node.text):
            out.append(node.text)
    elif isinstance(node, SequenceValue):
        for item in node.items:
            gather_texts(item, out)
    elif isinstance(node, MappingValue):
        for _, item in node.entries:
            gather_texts(item, out)
    elif isinstance(node, EncodedValue):
        gather_texts(node.inner, out)
    return out


def lower(node: Value, translations: Iterator[str]) -> Any:
    """
    Rebuild the raw value, taking one translation per translatable leaf.

    translations must yield texts in the order produced by gather_texts().
    An empty translation keeps the original leaf.
    """
    if isinstance(node, ScalarValue):
        if is_translatable(node.text):
            translated = next(translations)
            return translated if translated else node.text
        return node.text
    if isinstance(node, SequenceValue):
        return [lower(item, translations) for item in node.items]
    if isinstance(node, MappingValue):
        return {key: lower(item, translations) for key, item in node.entries}
    if isinstance(node, EncodedValue):
        return encode_json_structure(lower(node.inner, translations), dict(node.style))
    return node.value


class StructureWalker:
    """Translates the leaves of nested metadata values through a TranslationClient."""

    def __init__(self, client, max_texts_per_request: int = 50):
        self.client = client
        self.max_texts_per_request = max_texts_per_request

    def translate_value(self, value: Any, source_lang: str, target_lang: str) -> Any:
        """
        Translate every translatable leaf of value, keeping its shape.

        None, empty values, numbers and booleans come back unchanged; strings
        that hold JSON come back re-encoded in the same style.
        """
        if value is None or value == "" or value == [] or value == {}:
            return value

        node = lift(value)
        texts = gather_texts(node)
        if not texts:
            return value

        translated: List[str] = []
        for chunk in chunk_texts(texts, max_items=self.max_texts_per_request):
            result = self.client.translate_batch(chunk, source_lang, target_lang)
            translated.extend(result.texts)

        return lower(node, iter(translated))
