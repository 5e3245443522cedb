"""Experiment matrix: named variants run one after another."""

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

from ..core.canonical import Ordering
from ..core.config import ProbeSettings
from ..core.exceptions import ConfigurationError, ProbeError
from ..core.models import ProbeResult, Variant
from ..core.params import ParameterSet
from ..core.probe import Clock, ProbeExecutor

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "33"
DEFAULT_DIRECTION = "0"
DEFAULT_LANG = "zh-tw"
DEFAULT_DEVICE = "web"


def base_parameters(
    route: str = DEFAULT_ROUTE,
    direction: str = DEFAULT_DIRECTION,
    lang: str = DEFAULT_LANG,
    device: str = DEFAULT_DEVICE,
) -> ParameterSet:
    """Parameters the web client sends for a route-data request, in its order."""
    return ParameterSet.from_pairs(
        [("routeName", route), ("dir", direction), ("lang", lang), ("device", device)]
    )


def request_id(moment: datetime) -> str:
    """Request identifier the client derives from local time (to the second)."""
    return moment.strftime("%Y%m%d%H%M%S")


def default_variants(
    route: str = DEFAULT_ROUTE,
    direction: str = DEFAULT_DIRECTION,
    clock: Clock = datetime.now,
) -> list[Variant]:
    """The standard set of hypotheses about the token contract."""
    base = base_parameters(route, direction)
    return [
        Variant(
            name="base",
            label="Original params (unsorted)",
            params=base,
            ordering=Ordering.INSERTION,
        ),
        Variant(
            name="base-sorted",
            label="Original params (sorted)",
            params=base,
            ordering=Ordering.SORTED,
        ),
        Variant(
            name="request-id",
            label="With request_id (unsorted)",
            params=base.with_field("request_id", request_id(clock())),
            ordering=Ordering.INSERTION,
        ),
        Variant(
            name="device-android",
            label="Device=android (unsorted)",
            params=base.replace("device", "android"),
            ordering=Ordering.INSERTION,
        ),
        Variant(
            name="base-descending",
            label="Original params (unsorted, descending splice)",
            params=base,
            ordering=Ordering.INSERTION,
            scheme="descending",
        ),
    ]


def load_variants(path: str | Path) -> list[Variant]:
    """Load variants from a JSON file.

    The file holds a list of objects with ``name``, ``label``, ``params``
    (a list of ``[key, value]`` pairs, so order is explicit) and optionally
    ``ordering`` and ``scheme``.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read variants from {path}: {e}") from e

    if not isinstance(raw, list):
        raise ConfigurationError(f"Variants file {path} must contain a JSON list")

    variants = []
    for idx, entry in enumerate(raw):
        try:
            params = ParameterSet.from_pairs(tuple(pair) for pair in entry["params"])
            variants.append(
                Variant(
                    name=entry["name"],
                    label=entry.get("label", entry["name"]),
                    params=params,
                    ordering=Ordering(entry.get("ordering", Ordering.INSERTION.value)),
                    scheme=entry.get("scheme"),
                )
            )
        except (KeyError, TypeError, ValueError, ProbeError) as e:
            raise ConfigurationError(f"Invalid variant #{idx} in {path}: {e}") from e

    logger.info(f"Loaded {len(variants)} variants from {path}")
    return variants


class ExperimentMatrix:
    """An explicit, ordered list of variants."""

    def __init__(self, variants: Iterable[Variant]):
        self.variants = list(variants)
        names = [variant.name for variant in self.variants]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate variant names: {', '.join(duplicates)}")

    def __len__(self) -> int:
        return len(self.variants)

    def select(self, names: Iterable[str]) -> "ExperimentMatrix":
        """Matrix restricted to the named variants, in matrix order."""
        wanted = set(names)
        unknown = wanted - {variant.name for variant in self.variants}
        if unknown:
            raise ConfigurationError(f"Unknown variants: {', '.join(sorted(unknown))}")
        return ExperimentMatrix(v for v in self.variants if v.name in wanted)

    def validate(self, settings: ProbeSettings) -> None:
        """Check every variant's scheme resolves before anything is sent."""
        for variant in self.variants:
            try:
                settings.resolve_scheme(variant.scheme)
            except ProbeError as e:
                raise ConfigurationError(f"Variant {variant.name}: {e}") from e

    def run(
        self,
        executor: ProbeExecutor,
        on_result: Callable[[ProbeResult], None] | None = None,
    ) -> list[ProbeResult]:
        """Run every variant once, strictly in order.

        A failed probe never stops the run, and nothing is retried.

        Args:
            executor: Probe executor to send requests with
            on_result: Optional callback invoked after each probe

        Returns:
            One result per variant, in matrix order
        """
        self.validate(executor.settings)
        results: list[ProbeResult] = []

        logger.info(f"Running {len(self.variants)} variants against {executor.settings.endpoint}")
        for idx, variant in enumerate(self.variants, 1):
            logger.info(f"[{idx}/{len(self.variants)}] {variant.label}")
            result = executor.execute(variant)
            results.append(result)
            if on_result:
                on_result(result)

        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Finished: {succeeded}/{len(results)} variants accepted")
        return results
