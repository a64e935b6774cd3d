"""Parse osquery packs (.conf/.json) and raw SQL files into query records.

Both parsers produce the same RawQuery records so the rest of the
conversion does not care where a query came from:

- osquery pack: {"queries": {"name": {"query": ..., "interval": ...}}}
  one record per entry, sorted by name.
- SQL file: one record per ";"-terminated statement, named
  sql_query_1, sql_query_2, ... in file order. Text after the last ";"
  is dropped.
"""

import json
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from conversion_errors import MalformedInputError, UnsupportedFormatError


class Format(Enum):
    JSON_PACK = "json-pack"
    SQL = "sql"


EXTENSION_FORMATS = {
    ".conf": Format.JSON_PACK,
    ".json": Format.JSON_PACK,
    ".sql": Format.SQL,
}

SQL_NAME_TEMPLATE = "sql_query_{}"

# A run of non-";" characters closed by a ";". Newlines are part of the run.
_STATEMENT_RE = re.compile(r"([^;]+);")
_LINE_COMMENT_RE = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


@dataclass(frozen=True)
class RawQuery:
    """A query as found in the input, before any defaults are applied."""

    name: str
    query: str
    description: Optional[str] = None
    platform: Optional[str] = None
    interval: Any = None


def detect_format(path):
    """Pick the parser for a file from its extension."""
    ext = os.path.splitext(path)[1].lower()
    if ext not in EXTENSION_FORMATS:
        raise UnsupportedFormatError(f"unsupported file type: {path}")
    return EXTENSION_FORMATS[ext]


def _optional_str(name, qdef, field):
    value = qdef.get(field)
    if value is not None and not isinstance(value, str):
        raise MalformedInputError(
            f'Query "{name}" has a non-string "{field}" field ({type(value).__name__})'
        )
    return value


def parse_json_pack(text):
    """Parse an osquery pack into RawQuery records sorted by query name."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError("failed to parse JSON") from e

    if not isinstance(data, dict) or not isinstance(data.get("queries"), dict):
        raise MalformedInputError('Invalid osquery pack: missing or invalid "queries" field')

    records = []
    for name, qdef in sorted(data["queries"].items()):
        if not isinstance(qdef, dict):
            raise MalformedInputError(f'Query "{name}" is not a JSON object')
        records.append(RawQuery(
            name=name,
            query=_optional_str(name, qdef, "query") or "",
            description=_optional_str(name, qdef, "description"),
            platform=_optional_str(name, qdef, "platform"),
            # Either a number or a numeral string; coerced later.
            interval=qdef.get("interval"),
        ))
    return records


def strip_sql_comments(text):
    """Remove -- line comments and /* */ block comments."""
    text = _LINE_COMMENT_RE.sub("", text)
    return _BLOCK_COMMENT_RE.sub("", text)


def split_sql_statements(text, strip_comments=False):
    """Split SQL text into trimmed statements, one per terminating ";".

    There is no awareness of string literals or comments (unless
    strip_comments is set), so a ";" inside a literal ends the statement.
    """
    if strip_comments:
        text = strip_sql_comments(text)
    return [match.strip() for match in _STATEMENT_RE.findall(text)]


def parse_sql(text, strip_comments=False):
    """Turn a SQL file into positionally named RawQuery records."""
    return [
        RawQuery(name=SQL_NAME_TEMPLATE.format(i), query=statement)
        for i, statement in enumerate(split_sql_statements(text, strip_comments), 1)
    ]


def parse(data, fmt, strip_comments=False):
    """Decode file contents and run the parser for the given format."""
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInputError("input is not valid UTF-8") from e

    if fmt is Format.JSON_PACK:
        return parse_json_pack(text)
    return parse_sql(text, strip_comments=strip_comments)
