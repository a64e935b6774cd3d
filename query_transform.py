"""Apply Fleet defaults to parsed queries and emit multi-document YAML.

Output format, one document per query:

---
apiVersion: v1
kind: query
metadata:
  name: query_name
spec:
  name: query_name
  query: SELECT ...
  description: ...
  platform: linux, darwin, windows
  interval: 3600
"""

from dataclasses import dataclass

import yaml

from conversion_errors import SerializeError

DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_PLATFORM = "linux, darwin, windows"
DEFAULT_INTERVAL = 3600

API_VERSION = "v1"
KIND = "query"

DOCUMENT_SEPARATOR = "---\n"


# ---------------------------------------------------------------------------
# Custom YAML representer to force literal block style for multi-line strings
# ---------------------------------------------------------------------------
class LiteralStr(str):
    pass


def _literal_representer(dumper, data):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


yaml.add_representer(LiteralStr, _literal_representer)


@dataclass(frozen=True)
class CanonicalQuery:
    """A query with every Fleet field populated."""

    metadata_name: str
    spec_name: str
    query: str
    description: str
    platform: str
    interval: int
    api_version: str = API_VERSION
    kind: str = KIND


def parse_interval(value):
    """Return value as an int, or None if it is not an integer or numeral string."""
    # bool is an int subclass but never a valid interval
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def coerce_interval(value):
    parsed = parse_interval(value)
    if parsed is None:
        return DEFAULT_INTERVAL
    return parsed


def to_canonical(raw):
    """Build the CanonicalQuery for a RawQuery, filling in defaults."""
    return CanonicalQuery(
        metadata_name=raw.name,
        spec_name=raw.name,
        query=raw.query,
        description=raw.description or DEFAULT_DESCRIPTION,
        platform=raw.platform or DEFAULT_PLATFORM,
        interval=coerce_interval(raw.interval),
    )


def transform(raws):
    return [to_canonical(raw) for raw in raws]


def to_document(canonical):
    """Lay out a CanonicalQuery as the Fleet query resource mapping."""
    query = canonical.query
    if "\n" in query:
        query = LiteralStr(query)

    return {
        "apiVersion": canonical.api_version,
        "kind": canonical.kind,
        "metadata": {"name": canonical.metadata_name},
        "spec": {
            "name": canonical.spec_name,
            "query": query,
            "description": canonical.description,
            "platform": canonical.platform,
            "interval": canonical.interval,
        },
    }


def dump_document(canonical):
    """Render a single query as a YAML document body (no separator)."""
    try:
        return yaml.dump(
            to_document(canonical),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=200,
        )
    except yaml.YAMLError as e:
        raise SerializeError(f"failed to marshal YAML for {canonical.spec_name}") from e


def serialize(canonicals, legacy_framing=False):
    """Render all queries as one UTF-8 multi-document YAML stream.

    Every document is preceded by a "---" line. With legacy_framing the
    stream starts with the doubled "---" pair and documents are joined by
    a blank line plus separator, as older converters wrote it.
    """
    bodies = [dump_document(canonical) for canonical in canonicals]

    if legacy_framing:
        output = DOCUMENT_SEPARATOR * 2 + ("\n" + DOCUMENT_SEPARATOR).join(bodies)
    else:
        output = DOCUMENT_SEPARATOR + DOCUMENT_SEPARATOR.join(bodies)
    return output.encode("utf-8")
