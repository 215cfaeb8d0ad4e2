"""Request parameter redaction.

Provides ``ParameterFilter``, a recursive, depth- and size-limited sanitizer
that masks values by key name and by value content before request
parameters reach a log sink.

A host-supplied delegate (anything with a ``filter(mapping)`` method) is
preferred when given; the manual walk is used when there is none or when the
delegate raises.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, Union

logger = logging.getLogger(__name__)

FILTERED = "[FILTERED]"
MAX_DEPTH_MARKER = "[max_depth_exceeded]"

# Case-insensitive substrings, matched against key names and string values.
DEFAULT_SENSITIVE_PATTERNS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "key",
    "auth",
)

# Framework bookkeeping keys dropped from the top level of every result.
DEFAULT_EXCEPTION_KEYS: frozenset[str] = frozenset({"controller", "action", "format"})

DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_KEYS = 50
DEFAULT_MAX_ITEMS = 100

Scalar = Union[str, int, float, bool, None]
ParameterTree = Union[
    Mapping[Any, "ParameterTree"],
    list["ParameterTree"],
    tuple["ParameterTree", ...],
    Scalar,
]


class SupportsFilter(Protocol):
    """Host filter capability: returns a filtered copy of ``params``."""

    def filter(self, params: Mapping[Any, Any]) -> Any: ...


def depth_marker() -> dict[str, str]:
    return {FILTERED: MAX_DEPTH_MARKER}


def _is_sequence(value: object) -> bool:
    return isinstance(value, (list, tuple))


def _key_name(key: object) -> str | None:
    try:
        return str(key)
    except Exception:
        return None


class ParameterFilter:
    """Masks sensitive request parameters.

    Keys are matched by *substring* against ``sensitive_patterns``
    (case-insensitive); a flagged key masks its whole value. String values
    are matched against the same patterns regardless of their key.

    Mappings nested deeper than ``max_depth`` are replaced with
    ``{"[FILTERED]": "[max_depth_exceeded]"}``. Mappings keep at most
    ``max_keys`` entries and sequences at most ``max_items`` elements.
    """

    def __init__(
        self,
        sensitive_patterns: Iterable[str] = DEFAULT_SENSITIVE_PATTERNS,
        exception_keys: Iterable[str] = DEFAULT_EXCEPTION_KEYS,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_keys: int = DEFAULT_MAX_KEYS,
        max_items: int = DEFAULT_MAX_ITEMS,
        count_sequence_depth: bool = False,
    ) -> None:
        self._patterns: tuple[str, ...] = tuple(
            dict.fromkeys(p.lower() for p in sensitive_patterns if p)
        )
        self._exception_keys: frozenset[str] = frozenset(exception_keys)
        self._max_depth = max_depth
        self._max_keys = max_keys
        self._max_items = max_items
        self._count_sequence_depth = count_sequence_depth

    @property
    def sensitive_patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def exception_keys(self) -> frozenset[str]:
        return self._exception_keys

    def filter_params(
        self,
        params: object,
        delegate: SupportsFilter | None = None,
    ) -> dict[Any, Any]:
        """Return a redacted copy of ``params`` suitable for logging.

        Non-mapping input yields ``{}``. When ``delegate`` is given its
        result is used as-is (minus exception keys); a non-mapping result
        means the delegate kept nothing and yields ``{}``. If the delegate
        raises, the manual filter runs over the original ``params``.
        """
        if not isinstance(params, Mapping):
            return {}

        if delegate is None:
            return self._without_exception_keys(self.filter_manually(params))

        try:
            cleaned = delegate.filter(params)
        except Exception as exc:
            logger.debug("Parameter filter delegate failed, using manual filter: %s", exc)
            return self._without_exception_keys(self.filter_manually(params))

        if not isinstance(cleaned, Mapping):
            return {}
        return self._without_exception_keys(cleaned)

    def filter_manually(self, tree: ParameterTree, depth: int = 0) -> dict[Any, Any]:
        """Walk a mapping applying key and value rules.

        Returns ``{}`` for anything that is not a mapping. Exception keys are
        left in place; ``filter_params`` strips them from the top level.
        """
        if depth > self._max_depth:
            return depth_marker()
        if not isinstance(tree, Mapping):
            return {}

        filtered: dict[Any, Any] = {}
        for key, value in tree.items():
            if len(filtered) >= self._max_keys:
                break
            if self.should_filter_key(key):
                filtered[key] = FILTERED
            else:
                filtered[key] = self._filter_node(value, depth + 1)
        return filtered

    def should_filter_key(self, key: object) -> bool:
        name = _key_name(key)
        if name is None:
            return False
        lowered = name.lower()
        return any(pattern in lowered for pattern in self._patterns)

    def filter_value(self, value: Any) -> Any:
        """Mask a scalar string containing a sensitive pattern.

        Anything that is not a string is returned unchanged. Never raises.
        """
        if not isinstance(value, str):
            return value
        try:
            lowered = value.lower()
        except Exception:
            return value
        if any(pattern in lowered for pattern in self._patterns):
            return FILTERED
        return value

    def _filter_node(self, value: ParameterTree, depth: int) -> ParameterTree:
        if isinstance(value, Mapping):
            return self.filter_manually(value, depth)
        if _is_sequence(value):
            return self._filter_sequence(value, depth)
        return self.filter_value(value)

    def _filter_sequence(self, items: list[Any] | tuple[Any, ...], depth: int) -> Any:
        if depth > self._max_depth:
            return depth_marker()
        filtered: list[Any] = []
        for item in items[: self._max_items]:
            # Sequence-in-sequence always counts a level so list nesting stays bounded.
            if self._count_sequence_depth or _is_sequence(item):
                filtered.append(self._filter_node(item, depth + 1))
            else:
                filtered.append(self._filter_node(item, depth))
        return filtered

    def _without_exception_keys(self, params: Mapping[Any, Any]) -> dict[Any, Any]:
        result: dict[Any, Any] = {}
        for key, value in params.items():
            if _key_name(key) in self._exception_keys:
                continue
            result[key] = value
        return result


class KeyListFilter:
    """Delegate filter built from a configured list of parameter names.

    Each entry is either a plain string (case-insensitive substring match)
    or a compiled regular expression (matched with ``search``). Matching
    values are replaced with ``[FILTERED]`` at any depth.
    """

    def __init__(self, names: Iterable[str | re.Pattern[str]]) -> None:
        substrings: list[str] = []
        regexes: list[re.Pattern[str]] = []
        for name in names:
            if isinstance(name, re.Pattern):
                regexes.append(name)
            elif isinstance(name, str):
                if name:
                    substrings.append(name.lower())
            else:
                raise TypeError(f"Unsupported filter parameter: {name!r}")
        self._substrings = tuple(substrings)
        self._regexes = tuple(regexes)

    def filter(self, params: Mapping[Any, Any]) -> dict[Any, Any]:
        if not isinstance(params, Mapping):
            raise TypeError(f"Expected a mapping, got {type(params).__name__}")
        return self._filter_mapping(params)

    def _matches(self, key: object) -> bool:
        name = _key_name(key)
        if name is None:
            return False
        lowered = name.lower()
        if any(s in lowered for s in self._substrings):
            return True
        return any(r.search(name) for r in self._regexes)

    def _filter_mapping(self, params: Mapping[Any, Any]) -> dict[Any, Any]:
        return {
            key: FILTERED if self._matches(key) else self._filter_any(value)
            for key, value in params.items()
        }

    def _filter_any(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return self._filter_mapping(value)
        if _is_sequence(value):
            return [self._filter_any(item) for item in value]
        return value


def build_parameter_filter(
    names: Iterable[str | re.Pattern[str]] | None,
) -> KeyListFilter | None:
    """Build the delegate for ``names``; ``None`` when empty or invalid."""
    if not names:
        return None
    try:
        parameter_filter = KeyListFilter(names)
    except Exception as exc:
        logger.warning("Could not build parameter filter: %s", exc)
        return None
    return parameter_filter


_default_filter = ParameterFilter()


def filter_params(params: object, delegate: SupportsFilter | None = None) -> dict[Any, Any]:
    return _default_filter.filter_params(params, delegate)


def filter_parameters_manually(tree: ParameterTree, depth: int = 0) -> dict[Any, Any]:
    return _default_filter.filter_manually(tree, depth)


def should_filter_key(key: object) -> bool:
    return _default_filter.should_filter_key(key)


def filter_value(value: Any) -> Any:
    return _default_filter.filter_value(value)
