"""
Dotted-path access into nested mappings, e.g. ``"result.data"``.

List items are addressed by index, either dotted or bracketed:
``"bbox.1"`` and ``"bbox[1]"`` are the same path.
"""

import re
from typing import Any, List

_MISSING = object()
_PART = re.compile(r"[^.\[\]]+")


def _split(path: str) -> List[str]:
    return _PART.findall(path)


def _empty_for(part: str) -> Any:
    return [] if part.isdigit() else {}


def _pad(items: list, index: int) -> None:
    if index >= len(items):
        items.extend([None] * (index + 1 - len(items)))


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Get a nested value, attributes are used for non-mapping objects"""
    current = obj
    for part in _split(path):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else _MISSING
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return default
    return current


def _child(current: Any, part: str, next_part: str) -> Any:
    if isinstance(current, list) and part.isdigit():
        index = int(part)
        _pad(current, index)
        if current[index] is None:
            current[index] = _empty_for(next_part)
        return current[index]
    if isinstance(current, dict):
        if current.get(part) is None:
            current[part] = _empty_for(next_part)
        return current[part]
    if getattr(current, part, None) is None:
        setattr(current, part, _empty_for(next_part))
    return getattr(current, part)


def set_path(obj: Any, path: str, value: Any) -> None:
    """Set a nested value, creating intermediate mappings and lists"""
    parts = _split(path)
    current = obj
    for part, next_part in zip(parts[:-1], parts[1:]):
        current = _child(current, part, next_part)

    last = parts[-1]
    if isinstance(current, list) and last.isdigit():
        _pad(current, int(last))
        current[int(last)] = value
    elif isinstance(current, dict):
        current[last] = value
    else:
        setattr(current, last, value)


def unset_path(obj: Any, path: str) -> None:
    """Remove a nested value if present"""
    parts = _split(path)
    parent = get_path(obj, ".".join(parts[:-1])) if len(parts) > 1 else obj
    if isinstance(parent, dict):
        parent.pop(parts[-1], None)
    elif parent is not None and hasattr(parent, parts[-1]):
        setattr(parent, parts[-1], None)
