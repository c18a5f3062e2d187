"""
RestCountries (https://restcountries.com) connector.

Fetches country records for one lookup dimension and reduces each record to
the fields the dashboard shows: names, currencies, capitals, languages, flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx

from countrygate.core.config import settings
from countrygate.core.errors import NotFound, UpstreamFailure, ValidationFailure

logger = logging.getLogger("countrygate.upstream")

# The upstream refuses unfiltered /all requests, so every call asks for these
UPSTREAM_FIELDS = "name,currencies,capital,languages,flags"


@dataclass(frozen=True)
class Dimension:
    path: str
    not_found_message: str
    single: bool = False


DIMENSIONS: Dict[str, Dimension] = {
    "name": Dimension("name", "Country not found"),
    "region": Dimension("region", "Region not found"),
    "code": Dimension("alpha", "Country code not found", single=True),
    "currency": Dimension("currency", "Currency not found"),
    "language": Dimension("lang", "Language not found"),
}


def _part(country: Dict[str, Any], key: str, kind: type):
    value = country.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        logger.error("Upstream record has %s of type %s", key, type(value).__name__)
        raise UpstreamFailure(detail="Upstream returned an unexpected payload")
    return value


def transform_country(country: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce an upstream record to the public shape, defaulting missing parts.

    Parts of the wrong type make the whole response an ``UpstreamFailure``.
    """
    name = _part(country, "name", dict)
    flags = _part(country, "flags", dict)
    capital = _part(country, "capital", list)
    languages = _part(country, "languages", dict)
    if not all(isinstance(c, str) for c in capital) or not all(
        isinstance(v, str) for v in languages.values()
    ):
        raise UpstreamFailure(detail="Upstream returned an unexpected payload")
    return {
        "name": {
            "common": name.get("common") or "",
            "official": name.get("official") or "",
        },
        "currencies": _part(country, "currencies", dict),
        "capital": capital,
        "languages": languages,
        "flags": {
            "png": flags.get("png") or "",
            "svg": flags.get("svg") or "",
            "alt": flags.get("alt") or "",
        },
    }


class RestCountriesClient:
    """Thin async wrapper around the RestCountries v3.1 API. No retries."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.restcountries_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.upstream_timeout_seconds
        self.transport = transport

    async def _get(self, path: str, not_found_message: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(
                    url,
                    params={"fields": UPSTREAM_FIELDS},
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFound(not_found_message)
            logger.error("Upstream %s returned %d", path, e.response.status_code)
            raise UpstreamFailure(detail=f"Upstream responded with status {e.response.status_code}")
        except httpx.TimeoutException:
            logger.error("Upstream timeout after %ss on %s", self.timeout, path)
            raise UpstreamFailure(detail=f"Upstream timeout after {self.timeout}s")
        except httpx.RequestError as e:
            logger.error("Upstream request to %s failed: %s", path, e)
            raise UpstreamFailure(detail=str(e) or type(e).__name__)
        except ValueError as e:
            logger.error("Upstream %s returned invalid JSON: %s", path, e)
            raise UpstreamFailure(detail="Upstream returned an invalid response")

    async def all_countries(self) -> List[Dict[str, Any]]:
        data = await self._get("/all", "Countries not found")
        return [transform_country(c) for c in _as_list(data)]

    async def lookup(self, dimension: str, value: str) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Query one dimension; ``code`` yields a single record, the rest a list."""
        dim = DIMENSIONS.get(dimension)
        if dim is None:
            raise ValidationFailure(f"Unknown lookup dimension: {dimension}")
        if not value or not value.strip():
            raise ValidationFailure(f"A {dimension} value is required")

        data = await self._get(f"/{dim.path}/{quote(value.strip(), safe='')}", dim.not_found_message)
        records = _as_list(data)
        if dim.single:
            if not records:
                raise NotFound(dim.not_found_message)
            return transform_country(records[0])
        return [transform_country(c) for c in records]


def _as_list(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return [c for c in data if isinstance(c, dict)]
    if isinstance(data, dict):
        return [data]
    raise UpstreamFailure(detail="Upstream returned an unexpected payload")


def get_country_client() -> RestCountriesClient:
    """FastAPI dependency; tests override it with a mock transport."""
    return RestCountriesClient()
