"""Probe executor: one signed request per variant."""

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

import requests
from bs4 import BeautifulSoup

from .canonical import canonical_query_string
from .config import ProbeSettings
from .models import FailureKind, ProbeResult, Variant
from .token import derive_token

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"
MAX_PAYLOAD_CHARS = 2000


class ProbeExecutor:
    """Sends probes to the DSAT service and records what happened."""

    def __init__(
        self,
        settings: ProbeSettings | None = None,
        clock: Clock = datetime.now,
        session: requests.Session | None = None,
    ):
        """Initialize the executor.

        Args:
            settings: Endpoint, headers and timeout; defaults when omitted
            clock: Wall-clock source, read once per probe
            session: HTTP session to reuse
        """
        self.settings = settings or ProbeSettings()
        self.clock = clock
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": self.settings.user_agent,
                "Accept": "application/json, text/javascript, */*; q=0.01",
                "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
                "Origin": self.settings.origin,
                "Referer": self.settings.referer,
                "X-Requested-With": "XMLHttpRequest",
            }
        )
        self.session.headers.update(self.settings.extra_headers)

    def build_headers(self, token: str) -> dict[str, str]:
        """Per-request headers carrying the derived token."""
        return {
            "Content-Type": FORM_CONTENT_TYPE,
            self.settings.token_header: token,
        }

    @staticmethod
    def build_body(variant: Variant) -> str:
        """Percent-encoded form body in the variant's insertion order."""
        return urlencode(list(variant.params.pairs))

    def execute(self, variant: Variant) -> ProbeResult:
        """Run one probe.

        Transport and response problems are recorded on the result, never
        raised.

        Args:
            variant: Parameters, ordering and scheme under test

        Returns:
            Exactly one ProbeResult
        """
        scheme = self.settings.resolve_scheme(variant.scheme)
        moment = self.clock()
        canonical = canonical_query_string(variant.params, variant.ordering)
        token = derive_token(canonical, moment, scheme)

        result: dict[str, Any] = {
            "label": variant.label,
            "variant": variant.name,
            "ordering": variant.ordering,
            "scheme": scheme.name,
            "canonical_query": canonical,
            "token": token,
            "probed_at": moment,
        }

        logger.info(f"Probing {variant.name}: {canonical}")
        started = time.monotonic()
        try:
            response = self.session.post(
                self.settings.endpoint,
                data=self.build_body(variant),
                headers=self.build_headers(token),
                timeout=self.settings.timeout,
                verify=self.settings.verify_tls,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"Probe {variant.name} timed out: {e}")
            return ProbeResult(
                **result,
                elapsed_seconds=time.monotonic() - started,
                failure_kind=FailureKind.TIMEOUT,
                error=f"Timed out after {self.settings.timeout}s: {e}",
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Probe {variant.name} failed: {e}")
            return ProbeResult(
                **result,
                elapsed_seconds=time.monotonic() - started,
                failure_kind=FailureKind.NETWORK_FAILURE,
                error=f"Request failed: {e}",
            )

        result["elapsed_seconds"] = time.monotonic() - started
        result["status_code"] = response.status_code
        result.update(self._evaluate_response(response))

        probe_result = ProbeResult(**result)
        if probe_result.success:
            logger.info(
                f"Probe {variant.name} succeeded with {probe_result.record_count} records"
            )
        else:
            logger.info(f"Probe {variant.name} rejected: {probe_result.error}")
        return probe_result

    def _evaluate_response(self, response: requests.Response) -> dict[str, Any]:
        """Decide whether a response carries the expected route data."""
        if response.status_code != 200:
            return {
                "failure_kind": FailureKind.HTTP_STATUS,
                "error": f"HTTP {response.status_code}: {_summarize_body(response.text)}",
                "raw_payload": response.text[:MAX_PAYLOAD_CHARS],
            }

        try:
            payload = response.json()
        except (ValueError, RecursionError):
            # deeply nested bodies exhaust the decoder's stack
            return _unexpected(
                f"Response is not JSON: {_summarize_body(response.text)}",
                response.text[:MAX_PAYLOAD_CHARS],
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return _unexpected("Response has no 'data' object", payload)

        id_field = self.settings.id_field
        records_field = self.settings.records_field
        if data.get(id_field) in (None, ""):
            return _unexpected(f"'data' is missing '{id_field}'", payload)

        records = data.get(records_field)
        if not isinstance(records, list) or not records:
            return _unexpected(f"'data.{records_field}' is empty or missing", payload)

        first = records[0]
        return {
            "success": True,
            "route_id": str(data[id_field]),
            "record_count": len(records),
            "sample": first if isinstance(first, dict) else {"value": first},
        }


def _unexpected(reason: str, payload: Any) -> dict[str, Any]:
    return {
        "failure_kind": FailureKind.UNEXPECTED_RESPONSE_SHAPE,
        "error": reason,
        "raw_payload": payload,
    }


def _summarize_body(text: str, limit: int = 200) -> str:
    """Short description of a response body for error messages."""
    stripped = text.strip()
    if not stripped:
        return "empty body"

    if stripped.startswith("<"):
        soup = BeautifulSoup(stripped, "html.parser")
        if soup.title and soup.title.get_text().strip():
            return f"HTML page '{soup.title.get_text().strip()}'"
        stripped = " ".join(soup.get_text(" ").split()) or "HTML page"

    if len(stripped) > limit:
        return stripped[:limit] + "..."
    return stripped
