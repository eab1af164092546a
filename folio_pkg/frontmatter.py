"""
Metadata block extraction for Folio content files.

A content file may open with a structured metadata block in one of three
fence conventions, tried in this order:

    ---            +++            {
    key: value     key = "value"    "key": "value"
    ---            +++            }

The first convention whose fence parses is used. Parse failures inside a
fence fall through to the next convention (lenient mode) or raise
``FormatParseError`` (strict mode).
"""

import json
import logging
import re
import sys
from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional, Tuple

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ExtractionError, FormatParseError

logger = logging.getLogger('folio.frontmatter')

TOML_BARE_KEY = re.compile(r'^[A-Za-z0-9_-]+$')


class MetadataBlockFormat(Enum):
    YAML = 'yaml'
    TOML = 'toml'
    JSON = 'json'
    NONE = 'none'


def _stringify(value):
    """Flatten a parsed metadata value into the string form pages consume."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ', '.join(_stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def _to_metadata(parsed, format_name):
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise FormatParseError(format_name, f"expected a mapping, got {type(parsed).__name__}")
    return {str(key): _stringify(value) for key, value in parsed.items()}


def _parse_simple_pairs(block):
    """Read a block as plain ``key: value`` lines, splitting on the first colon."""
    pairs = {}
    for number, line in enumerate(block.split('\n'), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        if ':' not in stripped:
            raise FormatParseError('yaml', f"line {number} is not a key: value pair")
        key, value = stripped.split(':', 1)
        key = key.strip()
        if not key:
            raise FormatParseError('yaml', f"line {number} has an empty key")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
            value = value[1:-1]
        pairs[key] = value
    return pairs


def parse_yaml_block(block):
    try:
        return _to_metadata(yaml.safe_load(block), 'yaml')
    except (yaml.YAMLError, ValueError, TypeError) as e:
        # Unquoted colons in values ("title: A: B") are common in
        # hand-written front matter, and PyYAML raises ValueError for
        # timestamps that are not real dates ("2024-02-30"). Read those
        # blocks line by line.
        logger.debug(f"PyYAML rejected block, retrying as key: value lines: {e}")
        return _parse_simple_pairs(block)


def parse_toml_block(block):
    try:
        return _to_metadata(tomllib.loads(block), 'toml')
    except tomllib.TOMLDecodeError as e:
        raise FormatParseError('toml', str(e))


def parse_json_block(block):
    try:
        return _to_metadata(json.loads(block), 'json')
    except json.JSONDecodeError as e:
        raise FormatParseError('json', str(e))


def _split_line_fenced(text, fence):
    """
    Split ``text`` on a line-delimited fence.

    Returns (block, body), or None when the file does not open with the fence.
    Raises ExtractionError when the opening fence is never closed.
    """
    lines = text.split('\n')
    if lines[0].rstrip() != fence:
        return None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == fence:
            return '\n'.join(lines[1:index]), '\n'.join(lines[index + 1:])
    raise ExtractionError(f"Metadata block opened with '{fence}' is never closed")


def _balanced_object_end(text):
    """Index just past the brace closing the object that opens ``text``."""
    depth = 0
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _split_json_object(text):
    if not text.startswith('{'):
        return None
    end = _balanced_object_end(text)
    if end is None:
        raise ExtractionError("Metadata block opened with '{' is never closed")
    rest = text[end:]
    # Drop the remainder of the closing brace's line.
    newline = rest.find('\n')
    if newline != -1 and not rest[:newline].strip():
        rest = rest[newline + 1:]
    elif not rest.strip():
        rest = ''
    return text[:end], rest


FORMATS = (
    (MetadataBlockFormat.YAML, lambda text: _split_line_fenced(text, '---'), parse_yaml_block),
    (MetadataBlockFormat.TOML, lambda text: _split_line_fenced(text, '+++'), parse_toml_block),
    (MetadataBlockFormat.JSON, _split_json_object, parse_json_block),
)


def _trim_leading_blank_line(body):
    if body.startswith('\n'):
        return body[1:]
    return body


def _normalize_newlines(text):
    return text.lstrip('\ufeff').replace('\r\n', '\n')


def split_front_matter(text: str, strict: bool = False) -> Tuple[MetadataBlockFormat, Dict[str, str], str]:
    """
    Detect and parse the leading metadata block of ``text``.

    Returns (format, metadata, body). When no convention matches, the format
    is ``MetadataBlockFormat.NONE``, metadata is empty and the body is the
    whole text.
    """
    if not isinstance(text, str):
        raise ExtractionError(f"Expected text content, got {type(text).__name__}")
    text = _normalize_newlines(text)

    for block_format, splitter, parser in FORMATS:
        try:
            split = splitter(text)
            if split is None:
                continue
            block, body = split
            metadata = parser(block)
        except ExtractionError as e:
            if strict:
                raise
            logger.debug(f"{block_format.value} metadata block did not match: {e}")
            continue
        return block_format, metadata, _trim_leading_blank_line(body)

    return MetadataBlockFormat.NONE, {}, text


def extract(text: str, strict: bool = False) -> Tuple[Dict[str, str], str]:
    """Return (metadata, body) for a content file's text."""
    _, metadata, body = split_front_matter(text, strict=strict)
    return metadata, body


def _toml_key(key):
    return key if TOML_BARE_KEY.match(key) else json.dumps(key, ensure_ascii=False)


def serialize_metadata(metadata: Dict[str, str], block_format: MetadataBlockFormat) -> str:
    """
    Write a flat string mapping back out as a fenced metadata block.

    The result extracts back to the same mapping with ``extract``.
    """
    values = {str(key): _stringify(value) for key, value in metadata.items()}
    if block_format is MetadataBlockFormat.YAML:
        dumped = yaml.safe_dump(values, sort_keys=False, allow_unicode=True, default_flow_style=False) if values else ''
        return f"---\n{dumped}---\n"
    if block_format is MetadataBlockFormat.TOML:
        lines = ''.join(f"{_toml_key(key)} = {json.dumps(value, ensure_ascii=False)}\n" for key, value in values.items())
        return f"+++\n{lines}+++\n"
    if block_format is MetadataBlockFormat.JSON:
        return json.dumps(values, indent=2, ensure_ascii=False) + '\n'
    return ''


def detect_format(text: str) -> Optional[MetadataBlockFormat]:
    """Name the convention a file's metadata block uses, if any."""
    block_format, _, _ = split_front_matter(text)
    return None if block_format is MetadataBlockFormat.NONE else block_format
