"""Shared helpers for dict <-> dataclass conversion."""

from __future__ import annotations

from dataclasses import field
from typing import Any, Iterable


def extras(data: dict, known: Iterable[str]) -> dict[str, Any]:
    """Return the keys of *data* that the model does not name, in order."""
    known_set = set(known)
    return {k: v for k, v in data.items() if k not in known_set}


def string_list(value: Any) -> list[str]:
    """A JSON list of strings; a lone string is one item, not its characters."""
    if isinstance(value, str):
        return [value]
    return list(value)


def key_order_field() -> Any:
    """Dataclass field recording the key order of the JSON a model was read from.

    Not part of equality; ``dataclasses.replace`` carries it along, so an
    edited object still serializes in its original key order.
    """
    return field(default=(), repr=False, compare=False)


def compact(
    pairs: Iterable[tuple[str, Any]],
    extra: dict[str, Any] | None = None,
    order: Iterable[str] = (),
) -> dict:
    """Build an output dict, dropping ``None`` values and appending *extra*.

    Unset optionals are omitted rather than written as ``null`` so that a
    document read from disk is written back with the same keys.  Keys listed
    in *order* come first, in that order; any others follow in declared
    order.
    """
    out = {key: value for key, value in pairs if value is not None}
    if extra:
        for key, value in extra.items():
            out.setdefault(key, value)
    order = tuple(order)
    if not order:
        return out
    ranked = [key for key in order if key in out]
    seen = set(ranked)
    ranked.extend(key for key in out if key not in seen)
    return {key: out[key] for key in ranked}
