"""Location resolvers used to select a grid carbon intensity."""

from __future__ import annotations

import locale
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Protocol

import httpx

from green_carbon.exceptions import LocationResolutionError
from green_carbon.intensity import CarbonIntensityTable, load_intensity_table
from green_carbon.models import Location
from green_carbon.settings import GreenCarbonSettings, get_settings

if TYPE_CHECKING:
    from green_carbon.config import TrackerConfig

__all__ = [
    "DEFAULT_LOCATION",
    "GeoJsLocationResolver",
    "LocaleLocationResolver",
    "LocationResolver",
    "StaticLocationResolver",
    "alpha3_from_alpha2",
    "resolver_for",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_LOCATION: Final[Location] = Location(
    country_code="USA", country_name="United States"
)

_ALPHA2_TO_ALPHA3: Final[dict[str, str]] = {
    "US": "USA",
    "CA": "CAN",
    "GB": "GBR",
    "UK": "GBR",
    "DE": "DEU",
    "FR": "FRA",
    "ES": "ESP",
    "IT": "ITA",
    "JP": "JPN",
    "KR": "KOR",
    "CN": "CHN",
    "IN": "IND",
    "BR": "BRA",
    "RU": "RUS",
    "AU": "AUS",
    "NL": "NLD",
    "SE": "SWE",
    "NO": "NOR",
    "DK": "DNK",
    "FI": "FIN",
}

_LANGUAGE_TO_ALPHA3: Final[dict[str, str]] = {
    "en": "USA",
    "de": "DEU",
    "fr": "FRA",
    "es": "ESP",
    "it": "ITA",
    "ja": "JPN",
    "ko": "KOR",
    "zh": "CHN",
    "hi": "IND",
    "pt": "BRA",
    "ru": "RUS",
}


def alpha3_from_alpha2(code: str) -> str | None:
    """Map an ISO alpha-2 country code to alpha-3 for supported countries."""
    return _ALPHA2_TO_ALPHA3.get(code.upper())


class LocationResolver(Protocol):
    """Anything able to resolve the host location.

    Implementations raise :class:`LocationResolutionError` when the location
    cannot be determined; the tracker then falls back to
    :data:`DEFAULT_LOCATION`.
    """

    async def resolve(self) -> Location: ...


@dataclass(slots=True)
class StaticLocationResolver:
    """Return a manually configured country and optional sub-region."""

    country_code: str
    region: str | None = None
    table: CarbonIntensityTable = field(default_factory=load_intensity_table, repr=False)

    async def resolve(self) -> Location:
        code = self.country_code.upper()
        return Location(
            country_code=code,
            country_name=self.table.country_name(code),
            region=self.region.upper() if self.region else None,
        )


@dataclass(slots=True)
class LocaleLocationResolver:
    """Infer the country from the process locale.

    ``en_GB.UTF-8`` resolves to ``GBR``; a bare language such as ``de`` is
    mapped through a small language table.
    """

    locale_getter: Callable[[], str | None] = field(
        default=lambda: locale.getlocale()[0], repr=False
    )
    table: CarbonIntensityTable = field(default_factory=load_intensity_table, repr=False)

    def country_from_locale(self, value: str | None) -> str | None:
        if not value:
            return None
        tag = value.split(".", 1)[0].replace("-", "_")
        parts = tag.split("_")
        if len(parts) >= 2 and parts[1]:
            return alpha3_from_alpha2(parts[1])
        return _LANGUAGE_TO_ALPHA3.get(parts[0].lower())

    async def resolve(self) -> Location:
        try:
            raw = self.locale_getter()
        except (ValueError, OSError) as exc:
            raise LocationResolutionError(f"Locale lookup failed: {exc}") from exc
        code = self.country_from_locale(raw)
        if code is None:
            raise LocationResolutionError(f"Cannot derive a country from locale {raw!r}")
        return Location(country_code=code, country_name=self.table.country_name(code))


@dataclass(slots=True)
class GeoJsLocationResolver:
    """Resolve the location from the public IP via the geojs.io JSON API."""

    settings: GreenCarbonSettings = field(default_factory=get_settings, repr=False)
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    async def resolve(self) -> Location:
        url = self.settings.geojs_url
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.geojs_timeout, transport=self.transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise LocationResolutionError(f"Geolocation request failed: {exc}") from exc
        except ValueError as exc:
            raise LocationResolutionError("Geolocation response is not JSON") from exc

        if not isinstance(payload, dict):
            raise LocationResolutionError("Geolocation response is not an object")
        code = payload.get("country_code3")
        if not isinstance(code, str) or not code:
            raise LocationResolutionError("Geolocation response lacks country_code3")

        return Location(
            country_code=code.upper(),
            country_name=str(payload.get("country") or "Unknown"),
            region=_region_code(payload),
            latitude=_optional_float(payload.get("latitude")),
            longitude=_optional_float(payload.get("longitude")),
        )


def resolver_for(config: TrackerConfig) -> LocationResolver:
    """Pick the resolver a tracker configuration asks for.

    An explicit country wins; otherwise ``location_provider`` selects the
    geojs lookup or the process locale.
    """
    if config.country_code:
        return StaticLocationResolver(config.country_code, config.region)
    if config.location_provider == "geojs":
        return GeoJsLocationResolver()
    return LocaleLocationResolver()


def _optional_float(value: object) -> float | None:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _region_code(payload: dict[str, object]) -> str | None:
    # geojs reports full region names; only two-letter codes map onto the
    # sub-region tables.
    region = payload.get("region")
    if isinstance(region, str) and len(region.strip()) == 2:
        return region.strip().upper()
    return None
