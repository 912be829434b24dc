import logging
import os
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

import requests
from pydantic import ValidationError

from signup_widget.models import GeographyEntry, Region

log = logging.getLogger(__name__)

COUNTRY_DATA_URL = os.getenv(
    "COUNTRY_DATA_URL", "https://cdn.jsdelivr.net/npm/country-region-data@3.0.0/data.json"
)
COUNTRY_DATA_TIMEOUT = float(os.getenv("COUNTRY_DATA_TIMEOUT", "10"))
COUNTRY_DATA_RETRIES = int(os.getenv("COUNTRY_DATA_RETRIES", "2"))

FALLBACK_COUNTRY_DATA: List[Dict[str, Any]] = [
    {
        "countryName": "United States",
        "countryShortCode": "US",
        "regions": [
            {"name": "Alabama", "shortCode": "AL"},
            {"name": "Alaska", "shortCode": "AK"},
            {"name": "Arizona", "shortCode": "AZ"},
            {"name": "California", "shortCode": "CA"},
            {"name": "New York", "shortCode": "NY"},
        ],
    },
    {
        "countryName": "Canada",
        "countryShortCode": "CA",
        "regions": [
            {"name": "Alberta", "shortCode": "AB"},
            {"name": "British Columbia", "shortCode": "BC"},
            {"name": "Ontario", "shortCode": "ON"},
            {"name": "Quebec", "shortCode": "QC"},
        ],
    },
    {
        "countryName": "United Kingdom",
        "countryShortCode": "GB",
        "regions": [{"name": "England"}, {"name": "Scotland"}, {"name": "Wales"}, {"name": "Northern Ireland"}],
    },
    {
        "countryName": "Australia",
        "countryShortCode": "AU",
        "regions": [
            {"name": "New South Wales", "shortCode": "NSW"},
            {"name": "Victoria", "shortCode": "VIC"},
            {"name": "Queensland", "shortCode": "QLD"},
        ],
    },
    {
        "countryName": "India",
        "countryShortCode": "IN",
        "regions": [{"name": "Maharashtra"}, {"name": "Karnataka"}, {"name": "Delhi"}],
    },
    {
        "countryName": "Pakistan",
        "countryShortCode": "PK",
        "regions": [{"name": "Punjab"}, {"name": "Sindh"}, {"name": "Khyber Pakhtunkhwa"}],
    },
]


def _fold(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


class GeographyTable:
    """Read-only country/region lookup shared by the compiler, preview and resolver."""

    def __init__(self, entries: Sequence[GeographyEntry]):
        self.entries: List[GeographyEntry] = list(entries)
        self._by_code = {_fold(entry.country_short_code): entry for entry in self.entries}
        self._by_name = {_fold(entry.country_name): entry for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def find_country(self, code: Any) -> Optional[GeographyEntry]:
        return self._by_code.get(_fold(code))

    def find_country_by_name(self, name: Any) -> Optional[GeographyEntry]:
        return self._by_name.get(_fold(name))

    def country_name(self, code: Any) -> Optional[str]:
        entry = self.find_country(code)
        return entry.country_name if entry else None

    def regions_for(self, code: Any) -> List[Region]:
        entry = self.find_country(code)
        return list(entry.regions) if entry else []

    def find_region(self, code: Any, raw: Any) -> Optional[Region]:
        needle = _fold(raw)
        if not needle:
            return None
        regions = self.regions_for(code)
        for region in regions:
            if region.short_code and _fold(region.short_code) == needle:
                return region
        for region in regions:
            if _fold(region.name) == needle:
                return region
        return None

    def find_region_anywhere(self, raw: Any) -> Optional[Region]:
        for entry in self.entries:
            region = self.find_region(entry.country_short_code, raw)
            if region is not None:
                return region
        return None

    def to_wire(self) -> List[Dict[str, Any]]:
        return [entry.to_wire() for entry in self.entries]


def parse_country_data(payload: Any) -> Optional[List[GeographyEntry]]:
    """Return parsed entries, or None when the payload is not a usable list."""
    if not isinstance(payload, list):
        return None
    entries: List[GeographyEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            entry = GeographyEntry.model_validate(item)
        except ValidationError:
            log.debug("Skipping malformed country entry: %s", str(item)[:200])
            continue
        if entry.country_short_code and entry.country_name:
            entries.append(entry)
    return entries or None


def fallback_table() -> GeographyTable:
    return GeographyTable([GeographyEntry.model_validate(item) for item in FALLBACK_COUNTRY_DATA])


def fetch_country_data(
    url: Optional[str] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
) -> GeographyTable:
    """Fetch the country/region dataset; any failure yields the embedded fallback table."""
    target = url or COUNTRY_DATA_URL
    attempts = max(1, COUNTRY_DATA_RETRIES if retries is None else retries)
    delay = 0.5

    for attempt in range(attempts):
        try:
            response = requests.get(target, timeout=timeout or COUNTRY_DATA_TIMEOUT)
            if response.status_code >= 400:
                raise RuntimeError(f"{response.status_code} {response.text[:200]}")
            entries = parse_country_data(response.json())
            if entries is None:
                log.error("Country data at %s is not a list of countries; using fallback", target)
                return fallback_table()
            log.info("Loaded %d countries from %s", len(entries), target)
            return GeographyTable(entries)
        except Exception as exc:  # pragma: no cover - network interactions
            log.warning(
                "Country data fetch failed (attempt=%d/%d): %s",
                attempt + 1,
                attempts,
                exc,
            )
            if attempt + 1 < attempts:
                time.sleep(delay)
                delay = min(delay * 2, 4.0)

    log.error("Country data unavailable from %s; using embedded fallback", target)
    return fallback_table()


@lru_cache(maxsize=1)
def get_geography_table() -> GeographyTable:
    return fetch_country_data()


def reset_geography_cache() -> None:
    get_geography_table.cache_clear()
