"""Token derivation for the DSAT web client.

The web client hashes the request parameters and splices the current date
and time into the hex digest. The exact splice order is not documented, so
each variant of it is a :class:`TokenScheme` and the probe harness decides
which one the service accepts.
"""

import hashlib
import logging
from collections.abc import Iterable
from datetime import datetime

from .exceptions import TokenSchemeError
from .models import Insertion, TimestampComponents, TokenScheme

logger = logging.getLogger(__name__)

GROWING_SCHEME = TokenScheme(
    name="growing",
    description="year at 4, month+day at 12, hour+minute at 24, each on the grown sequence",
    insertions=(
        Insertion(fragment="year", index=4),
        Insertion(fragment="month_day", index=12),
        Insertion(fragment="hour_minute", index=24),
    ),
)

DESCENDING_SCHEME = TokenScheme(
    name="descending",
    description="hour+minute at 24, month+day at 12, year at 4 (web client bundle order)",
    insertions=(
        Insertion(fragment="hour_minute", index=24),
        Insertion(fragment="month_day", index=12),
        Insertion(fragment="year", index=4),
    ),
)

DEFAULT_SCHEME = GROWING_SCHEME

BUILTIN_SCHEMES: dict[str, TokenScheme] = {
    scheme.name: scheme for scheme in (GROWING_SCHEME, DESCENDING_SCHEME)
}


def get_scheme(
    name: str, extra: dict[str, TokenScheme] | None = None
) -> TokenScheme:
    """Look up a scheme by name, preferring user-defined ones."""
    schemes = {**BUILTIN_SCHEMES, **(extra or {})}
    try:
        return schemes[name]
    except KeyError:
        known = ", ".join(sorted(schemes))
        raise TokenSchemeError(f"Unknown token scheme {name!r} (known: {known})") from None


def compute_digest(text: str, algorithm: str = "md5") -> str:
    """Lowercase hex digest of the UTF-8 bytes of ``text``."""
    try:
        hasher = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise TokenSchemeError(f"Unsupported hash algorithm: {algorithm}") from e
    hasher.update(text.encode("utf-8"))
    return hasher.hexdigest()


def splice(digest: str, insertions: Iterable[tuple[int, str]]) -> str:
    """Insert fragments into a digest, one step at a time.

    The digest becomes a list of single characters. Each fragment is inserted
    as one element, so an index always refers to the list as it stands after
    the previous steps.

    Args:
        digest: Hex digest
        insertions: ``(index, fragment)`` steps in application order

    Returns:
        All elements joined back into one string
    """
    sequence: list[str] = list(digest)
    for index, fragment in insertions:
        if index < 0 or index > len(sequence):
            raise TokenSchemeError(
                f"Cannot insert at {index} into a {len(sequence)}-element sequence"
            )
        sequence.insert(index, fragment)
    return "".join(sequence)


def splice_timestamp(
    digest: str, timestamp: TimestampComponents, scheme: TokenScheme = DEFAULT_SCHEME
) -> str:
    """Apply a scheme's insertion plan using the given timestamp fragments."""
    return splice(
        digest,
        [(step.index, timestamp.fragment(step.fragment)) for step in scheme.insertions],
    )


def derive_token(
    canonical_query: str, moment: datetime, scheme: TokenScheme = DEFAULT_SCHEME
) -> str:
    """Derive the request token for a canonical query string.

    Args:
        canonical_query: Hash input built by ``canonical_query_string``
        moment: The single clock reading for this request
        scheme: Token scheme hypothesis

    Returns:
        The token (44 characters for the MD5 schemes)
    """
    digest = compute_digest(canonical_query, scheme.algorithm)
    token = splice_timestamp(digest, scheme.timestamp(moment), scheme)
    logger.debug(f"Derived token with scheme {scheme.name}: {canonical_query!r} -> {token}")
    return token
