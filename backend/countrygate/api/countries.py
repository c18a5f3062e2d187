"""Country-data proxy — every route needs a valid API key."""

from fastapi import APIRouter, Depends

from countrygate.core.api_key_auth import verify_api_key
from countrygate.models.user import APIKey
from countrygate.schemas.countries import CountryList, CountryResult
from countrygate.services.restcountries import RestCountriesClient, get_country_client

router = APIRouter(prefix="/api/countries", tags=["Countries"])


async def _list(client: RestCountriesClient, dimension: str, value: str) -> CountryList:
    countries = await client.lookup(dimension, value)
    return CountryList(count=len(countries), data=countries)


@router.get("", response_model=CountryList)
async def get_all_countries(
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    """All countries, reduced to name, currencies, capital, languages and flags."""
    countries = await client.all_countries()
    return CountryList(count=len(countries), data=countries)


@router.get("/name/{name}", response_model=CountryList)
async def get_country_by_name(
    name: str,
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    return await _list(client, "name", name)


@router.get("/region/{region}", response_model=CountryList)
async def get_countries_by_region(
    region: str,
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    return await _list(client, "region", region)


@router.get("/code/{code}", response_model=CountryResult)
async def get_country_by_code(
    code: str,
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    """Single country by ISO 3166 alpha-2 or alpha-3 code."""
    country = await client.lookup("code", code)
    return CountryResult(data=country)


@router.get("/currency/{currency}", response_model=CountryList)
async def get_countries_by_currency(
    currency: str,
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    return await _list(client, "currency", currency)


@router.get("/language/{language}", response_model=CountryList)
async def get_countries_by_language(
    language: str,
    api_key: APIKey = Depends(verify_api_key),
    client: RestCountriesClient = Depends(get_country_client),
):
    return await _list(client, "language", language)
