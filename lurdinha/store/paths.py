# lurdinha/store/paths.py
"""
Dot-path field updates on a plain JSON document.

`apply_update(doc, {"roundData.answers.u1": "pizza"})` only touches the
`u1` leaf; sibling answers are left alone. Intermediate maps are created
when missing (or when the stored value at that level is null).
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

_MISSING = object()


def split_path(path: str) -> list[str]:
    parts = path.split(".")
    if not path or any(p == "" for p in parts):
        raise ValueError(f"Invalid field path: {path!r}")
    return parts


def read_path(doc: Mapping[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = doc
    for part in split_path(path):
        if not isinstance(cur, Mapping):
            return default
        cur = cur.get(part, _MISSING)
        if cur is _MISSING:
            return default
    return cur


def apply_update(doc: Mapping[str, Any], fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a new document with every dot-path in `fields` set."""
    out = copy.deepcopy(dict(doc))
    for path, value in fields.items():
        *parents, leaf = split_path(path)
        cur = out
        for part in parents:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt
        cur[leaf] = copy.deepcopy(value)
    return out


def matches(doc: Mapping[str, Any], expect: Mapping[str, Any] | None) -> bool:
    if not expect:
        return True
    return all(read_path(doc, path) == value for path, value in expect.items())
