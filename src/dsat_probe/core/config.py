"""Probe settings."""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigurationError, ProbeError
from .models import TokenScheme
from .token import get_scheme

logger = logging.getLogger(__name__)

DSAT_ORIGIN = "https://bis.dsat.gov.mo:37812"
ROUTE_DATA_ENDPOINT = f"{DSAT_ORIGIN}/macauweb/getRouteData.html"
DEFAULT_REFERER = f"{DSAT_ORIGIN}/macauweb/routestation/bus"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ProbeSettings(BaseModel):
    """Everything the probe executor needs to talk to the service."""

    endpoint: str = Field(ROUTE_DATA_ENDPOINT, description="URL every probe is POSTed to")
    origin: str = Field(DSAT_ORIGIN, description="Origin header of the official web client")
    referer: str = Field(DEFAULT_REFERER, description="Referer header of the official web client")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="Browser User-Agent string")
    token_header: str = Field("token", description="Header carrying the derived token")
    timeout: float = Field(5.0, gt=0, description="Request timeout in seconds")
    verify_tls: bool = Field(True, description="Verify the server certificate")
    extra_headers: dict[str, str] = Field(
        default_factory=dict, description="Additional request headers"
    )
    scheme: str = Field("growing", description="Default token scheme name")
    schemes: dict[str, TokenScheme] = Field(
        default_factory=dict, description="User-defined token schemes by name"
    )
    id_field: str = Field("routeCode", description="Route identifier key inside 'data'")
    records_field: str = Field("routeInfo", description="Stop list key inside 'data'")

    @model_validator(mode="before")
    @classmethod
    def _name_schemes(cls, data: object) -> object:
        # Schemes defined in a file may omit "name"; the mapping key is used
        if isinstance(data, dict) and isinstance(data.get("schemes"), dict):
            data = dict(data)
            data["schemes"] = {
                key: {"name": key, **value} if isinstance(value, dict) else value
                for key, value in data["schemes"].items()
            }
        return data

    def resolve_scheme(self, name: str | None = None) -> TokenScheme:
        return get_scheme(name or self.scheme, self.schemes)


def load_settings(path: str | Path | None = None, **overrides: object) -> ProbeSettings:
    """Load settings from a JSON file and apply overrides.

    Args:
        path: Optional JSON file; defaults are used when omitted
        **overrides: Field values taking precedence over the file (None is ignored)

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    data: dict[str, object] = {}
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to read settings from {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Settings file {path} must contain a JSON object")
        data.update(loaded)
        logger.info(f"Loaded settings from {path}")

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        settings = ProbeSettings.model_validate(data)
        # Fail here rather than mid-run if the default scheme is unknown
        settings.resolve_scheme()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
    except ProbeError as e:
        raise ConfigurationError(str(e)) from e
    return settings
