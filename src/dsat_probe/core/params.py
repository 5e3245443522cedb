"""Ordered request parameter sets."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .exceptions import ParameterSetError


@dataclass(frozen=True)
class ParameterSet:
    """Ordered, immutable sequence of ``(key, value)`` string pairs.

    The order pairs are supplied in is kept as-is; it is part of what gets
    hashed. Use :meth:`sorted_pairs` for the key-sorted view.
    """

    pairs: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        pairs = tuple(tuple(pair) for pair in self.pairs)
        seen: set[str] = set()
        for pair in pairs:
            if len(pair) != 2:
                raise ParameterSetError(f"Expected a (key, value) pair, got {pair!r}")
            key, value = pair
            if not isinstance(key, str):
                raise ParameterSetError(f"Parameter key must be a string: {key!r}")
            if not isinstance(value, str):
                raise ParameterSetError(
                    f"Parameter {key!r} must have a string value, got {type(value).__name__}"
                )
            if not key:
                raise ParameterSetError("Parameter key cannot be empty")
            if key in seen:
                raise ParameterSetError(f"Duplicate parameter key: {key!r}")
            seen.add(key)
        object.__setattr__(self, "pairs", pairs)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "ParameterSet":
        return cls(tuple(pairs))

    @classmethod
    def from_strings(cls, items: Iterable[str]) -> "ParameterSet":
        """Build from ``key=value`` strings (as given on the command line)."""
        pairs = []
        for item in items:
            if "=" not in item:
                raise ParameterSetError(f"Expected KEY=VALUE, got {item!r}")
            key, value = item.split("=", 1)
            pairs.append((key, value))
        return cls(tuple(pairs))

    def keys(self) -> list[str]:
        return [key for key, _ in self.pairs]

    def sorted_pairs(self) -> list[tuple[str, str]]:
        """Pairs in ascending lexicographic key order."""
        return sorted(self.pairs, key=lambda pair: pair[0])

    def with_field(self, key: str, value: str) -> "ParameterSet":
        """Return a new set with ``key=value`` appended."""
        return ParameterSet(self.pairs + ((key, value),))

    def replace(self, key: str, value: str) -> "ParameterSet":
        """Return a new set with the value of an existing key changed in place."""
        if key not in self:
            raise ParameterSetError(f"Unknown parameter key: {key!r}")
        return ParameterSet(
            tuple((k, value if k == key else v) for k, v in self.pairs)
        )

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __contains__(self, key: object) -> bool:
        return key in self.keys()
