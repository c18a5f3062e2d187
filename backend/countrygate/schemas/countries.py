from pydantic import BaseModel
from typing import Dict, List, Any


# ─── Country Schemas ───

class CountryName(BaseModel):
    common: str
    official: str


class CountryFlags(BaseModel):
    png: str = ""
    svg: str = ""
    alt: str = ""


class Country(BaseModel):
    name: CountryName
    currencies: Dict[str, Any] = {}
    capital: List[str] = []
    languages: Dict[str, str] = {}
    flags: CountryFlags


class CountryList(BaseModel):
    success: bool = True
    count: int
    data: List[Country]


class CountryResult(BaseModel):
    success: bool = True
    data: Country
