"""
Execution Options

A closed set of recognized options passed to the agent executor on every
call. Options values are immutable: with_() and merge() return new values,
and merging is last-write-wins per option.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class Option(str, Enum):
    """Options recognized by the agent executor."""

    STREAM_CHUNK_CALLBACK = "stream_chunk_callback"
    MODEL = "model"
    TEMPERATURE = "temperature"
    TOP_P = "top_p"
    MAX_TOKENS = "max_tokens"
    STOP = "stop"


# Options forwarded to the completion call as sampling parameters
SAMPLING_OPTIONS = (Option.TEMPERATURE, Option.TOP_P, Option.MAX_TOKENS, Option.STOP)


class Options:
    """Immutable configuration bag keyed by Option."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[Option | str, Any] | None = None):
        self._values = MappingProxyType(
            {Option(key): value for key, value in (values or {}).items()}
        )

    def with_(self, option: Option | str, value: Any) -> "Options":
        """Return new options with a single option set."""
        return Options({**self._values, Option(option): value})

    def merge(self, other: "Options | Mapping[Option | str, Any]") -> "Options":
        """Return new options where values from other win."""
        incoming = other._values if isinstance(other, Options) else other
        merged: dict[Option | str, Any] = dict(self._values)
        merged.update({Option(key): value for key, value in incoming.items()})
        return Options(merged)

    def get(self, option: Option | str, default: Any = None) -> Any:
        return self._values.get(Option(option), default)

    def to_completion_kwargs(self) -> dict[str, Any]:
        """Sampling parameters as keyword arguments for a completion call."""
        return {
            option.value: self._values[option]
            for option in SAMPLING_OPTIONS
            if self._values.get(option) is not None
        }

    def __contains__(self, option: object) -> bool:
        try:
            return Option(option) in self._values
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Option]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Options):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    def __repr__(self) -> str:
        values = {key.value: value for key, value in self._values.items()}
        return f"Options({values!r})"
