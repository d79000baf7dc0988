"""Tests for location resolvers."""

from __future__ import annotations

import httpx
import pytest

from green_carbon.config import TrackerConfig
from green_carbon.exceptions import LocationResolutionError
from green_carbon.location import (
    GeoJsLocationResolver,
    LocaleLocationResolver,
    StaticLocationResolver,
    alpha3_from_alpha2,
    resolver_for,
)
from green_carbon.settings import GreenCarbonSettings


def _geojs(handler) -> GeoJsLocationResolver:
    return GeoJsLocationResolver(
        settings=GreenCarbonSettings(), transport=httpx.MockTransport(handler)
    )


def test_alpha2_mapping() -> None:
    assert alpha3_from_alpha2("gb") == "GBR"
    assert alpha3_from_alpha2("UK") == "GBR"
    assert alpha3_from_alpha2("XX") is None


async def test_static_resolver_normalises_codes() -> None:
    location = await StaticLocationResolver("usa", "ca").resolve()
    assert location.country_code == "USA"
    assert location.country_name == "United States"
    assert location.region == "CA"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("en_GB.UTF-8", "GBR"),
        ("fr-CA", "CAN"),
        ("de", "DEU"),
        ("ja_JP", "JPN"),
    ],
)
async def test_locale_resolver(raw: str, expected: str) -> None:
    location = await LocaleLocationResolver(locale_getter=lambda: raw).resolve()
    assert location.country_code == expected


@pytest.mark.parametrize("raw", [None, "", "C", "en_ZZ"])
async def test_locale_resolver_failures(raw) -> None:
    resolver = LocaleLocationResolver(locale_getter=lambda: raw)
    with pytest.raises(LocationResolutionError):
        await resolver.resolve()


async def test_geojs_resolver_parses_payload() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "country_code3": "can",
                "country": "Canada",
                "region": "QC",
                "latitude": "45.5",
                "longitude": "-73.6",
            },
        )

    location = await _geojs(handler).resolve()
    assert requests[0].url == "https://get.geojs.io/v1/ip/geo.json"
    assert location.country_code == "CAN"
    assert location.country_name == "Canada"
    assert location.region == "QC"
    assert location.latitude == 45.5
    assert location.longitude == -73.6


async def test_geojs_resolver_ignores_full_region_names() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"country_code3": "USA", "country": "United States", "region": "California"}
        )

    location = await _geojs(handler).resolve()
    assert location.region is None
    assert location.latitude is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=["USA"]),
        httpx.Response(200, json={"country": "Nowhere"}),
    ],
)
async def test_geojs_resolver_errors(response: httpx.Response) -> None:
    with pytest.raises(LocationResolutionError):
        await _geojs(lambda request: response).resolve()


async def test_geojs_resolver_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(LocationResolutionError):
        await _geojs(handler).resolve()


async def test_resolver_for_prefers_explicit_country() -> None:
    resolver = resolver_for(
        TrackerConfig(country_code="CAN", region="ON", location_provider="geojs")
    )

    assert isinstance(resolver, StaticLocationResolver)
    location = await resolver.resolve()
    assert (location.country_code, location.region) == ("CAN", "ON")


@pytest.mark.parametrize(
    ("provider", "expected"),
    [("geojs", GeoJsLocationResolver), ("locale", LocaleLocationResolver)],
)
def test_resolver_for_follows_location_provider(provider: str, expected: type) -> None:
    assert isinstance(resolver_for(TrackerConfig(location_provider=provider)), expected)
