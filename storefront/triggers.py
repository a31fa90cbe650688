"""Document write triggers.

Handlers register against a path pattern such as
``stripe_customers/{userId}/payments/{pushId}`` and are called after a write
to a matching document has been committed.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

_PARAM = re.compile(r"\{(\w+)\}")

_handlers: Dict[str, List[Tuple[re.Pattern, Callable]]] = {"create": [], "update": []}


@dataclass
class Snapshot:
    path: str
    data: Optional[Dict[str, Any]]

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass
class Change:
    before: Snapshot
    after: Snapshot


@dataclass
class EventContext:
    function_name: str
    params: Dict[str, str] = field(default_factory=dict)


def compile_pattern(pattern: str) -> re.Pattern:
    parts = []
    last = 0
    for match in _PARAM.finditer(pattern):
        parts.append(re.escape(pattern[last:match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        last = match.end()
    parts.append(re.escape(pattern[last:]))
    return re.compile("^" + "".join(parts) + "$")


def _register(kind: str, pattern: str):
    compiled = compile_pattern(pattern.strip("/"))

    def decorator(func):
        _handlers[kind].append((compiled, func))
        return func

    return decorator


def on_create(pattern: str):
    """Call the decorated ``func(snapshot, context)`` when a matching document is created."""
    return _register("create", pattern)


def on_update(pattern: str):
    """Call the decorated ``func(change, context)`` when a matching document is overwritten."""
    return _register("update", pattern)


def dispatch(path: str, before: Optional[Dict[str, Any]], after: Dict[str, Any]):
    kind = "create" if before is None else "update"
    for compiled, func in list(_handlers[kind]):
        match = compiled.match(path)
        if not match:
            continue
        context = EventContext(function_name=func.__name__, params=match.groupdict())
        logger.debug("trigger_dispatched", kind=kind, path=path, function_name=func.__name__)
        if kind == "create":
            func(Snapshot(path, after), context)
        else:
            func(Change(Snapshot(path, before), Snapshot(path, after)), context)
