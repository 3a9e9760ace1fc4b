"""
Normalization of raw repository nodes.

A node comes back from GraphQL with blob wrappers (``{"text": ...}``),
ref objects and paged connections. ``normalize_repository`` turns it into
a flat record. A field that cannot be converted is moved, untouched, into
the record's ``errors`` mapping instead of failing the whole record; only
a missing ``nameWithOwner`` is fatal.
"""

import copy
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .domain import NormalizationError

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "codeOfConduct",
    "codeOwners",
    "contributing",
    "license",
    "readme",
    "travis",
)
JSON_FIELDS = ("w3cJson", "preview")

_GROUP_ID = re.compile(r"\s*[+-]?[0-9]+\s*")


class InvalidField(Exception):
    """Raised by a field converter; ``original`` is recorded under ``errors``."""

    def __init__(self, original: Any):
        super().__init__(repr(original))
        self.original = original


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Format ``moment`` (default: now) as ``2024-05-01T10:00:00.000Z``."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def is_noise(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "") or (
        isinstance(value, list) and not value
    )


def denoise(obj: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None, an empty string or an empty list."""
    return {key: value for key, value in obj.items() if not is_noise(value)}


def _is_blob(value: Any) -> bool:
    # non-blob objects come back as {}
    return isinstance(value, dict) and ("text" in value or not value)


def to_text(value: Any) -> str:
    if _is_blob(value):
        text = value.get("text")
        if isinstance(text, str) and text != "":
            return text
    elif isinstance(value, str) and value != "":
        return value
    raise InvalidField(value)


def to_json(value: Any) -> Any:
    if not _is_blob(value):
        # already decoded
        return value
    try:
        return json.loads(value["text"])
    except (KeyError, TypeError, ValueError, RecursionError):
        raise InvalidField(value)


def parse_group_id(value: Any) -> int:
    """Strict integer parse: ``"12"`` and ``12`` are accepted, ``"12x"`` is not."""
    if isinstance(value, bool):
        raise InvalidField(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _GROUP_ID.fullmatch(value):
        try:
            return int(value)
        except ValueError:
            # longer than the interpreter's int conversion limit
            raise InvalidField(value)
    raise InvalidField(value)


def normalize_group(group: Any) -> List[int]:
    """
    Normalize a w3c.json ``group`` to a list of integers.

    Raises InvalidField carrying the whole original value when any
    element is not an integer.
    """
    items = group if isinstance(group, list) else [group]
    try:
        return [parse_group_id(item) for item in items]
    except InvalidField:
        raise InvalidField(group)


def flatten_ref(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    if isinstance(value, str):
        return value
    raise InvalidField(value)


def flatten_nodes(value: Any) -> Optional[list]:
    """Replace a connection wrapper with its ``nodes`` list."""
    nodes = value.get("nodes") if isinstance(value, dict) else value
    if nodes is None:
        return None
    if not isinstance(nodes, list):
        raise InvalidField(value)
    if nodes and nodes[0] is None:
        # GitHub sometimes answers [null, ...] for a connection it failed to resolve
        raise InvalidField(nodes)
    return nodes


def flatten_labels(value: Any) -> Optional[List[str]]:
    nodes = flatten_nodes(value)
    if nodes is None:
        return None
    names = []
    for node in nodes:
        if isinstance(node, str):
            names.append(node)
        elif isinstance(node, dict) and isinstance(node.get("name"), str):
            names.append(node["name"])
        else:
            raise InvalidField(nodes)
    return names


def flatten_objects(value: Any) -> Optional[List[Any]]:
    nodes = flatten_nodes(value)
    if nodes is None:
        return None
    return [denoise(node) if isinstance(node, dict) else node for node in nodes]


_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "defaultBranch": flatten_ref,
    "labels": flatten_labels,
    "milestones": flatten_objects,
    "branchProtectionRules": flatten_objects,
}
_CONVERTERS.update({name: to_text for name in TEXT_FIELDS})
_CONVERTERS.update({name: to_json for name in JSON_FIELDS})


def _check_identity(raw: Any) -> str:
    if not isinstance(raw, Mapping):
        raise NormalizationError("Invalid repository object", payload=raw)
    name = raw.get("nameWithOwner")
    if not isinstance(name, str) or not name:
        raise NormalizationError("Invalid repository object", payload=raw)
    return name


def normalize_repository(
    raw: Mapping[str, Any],
    fetched_at: Union[datetime, str, None] = None,
) -> Dict[str, Any]:
    """
    Build the canonical record for one raw repository node.

    The input is left untouched. Conversion failures are collected in
    ``errors`` (keyed by field, holding the original value); ``errors`` is
    only present when something failed. ``fetchedAt`` defaults to an
    existing ``fetchedAt`` on the input, then to the current time.
    """
    name = _check_identity(raw)
    source = copy.deepcopy(dict(raw))
    errors: Dict[str, Any] = {}
    previous_errors = source.pop("errors", None)
    if isinstance(previous_errors, dict):
        errors.update(previous_errors)

    record: Dict[str, Any] = {}
    for key, value in source.items():
        convert = _CONVERTERS.get(key)
        if convert is None or value is None or value == "":
            record[key] = value
            continue
        try:
            record[key] = convert(value)
        except InvalidField as e:
            logger.debug(f"{name}: invalid {key} ({e})")
            errors[key] = e.original

    w3c = record.get("w3cJson")
    if isinstance(w3c, dict) and w3c.get("group") is not None:
        w3c = dict(w3c)
        try:
            w3c["group"] = normalize_group(w3c["group"])
        except InvalidField as e:
            logger.debug(f"{name}: invalid group ({e})")
            errors["group"] = e.original
            del w3c["group"]
        record["w3cJson"] = w3c

    if isinstance(fetched_at, str):
        record["fetchedAt"] = fetched_at
    elif fetched_at is not None or not isinstance(record.get("fetchedAt"), str):
        record["fetchedAt"] = utc_timestamp(fetched_at)

    record = denoise(record)
    if errors:
        record["errors"] = errors
    return record
