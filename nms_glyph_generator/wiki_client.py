"""
Client for the No Man's Sky wiki Cargo query API.
Fetches pages of the Regions table (civilization, galaxy, coordinates).
"""

import logging
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('nms_glyphs.wiki')

DEFAULT_API_URL = 'https://nomanssky.fandom.com/api.php'
DEFAULT_PAGE_SIZE = 500

# Cargo field aliases
CIVILIZATION_FIELD = 'civilizeD'
GALAXY_FIELD = 'galaxY'
COORDINATES_FIELD = 'coordinateS'
PAGE_NAME_FIELD = 'pageName'

REGION_FIELDS = (
    f'Regions.Civilized={CIVILIZATION_FIELD},'
    f'Regions.Galaxy={GALAXY_FIELD},'
    f'Regions.Coordinates={COORDINATES_FIELD},'
    f'_pageName={PAGE_NAME_FIELD}'
)

# Regions whose civilization is this value are not claimed by anyone
UNCLAIMED_CIVILIZATION = 'Uncharted'


class FetchError(Exception):
    """Raised when a page of the Cargo query cannot be fetched."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def is_valid_row(row: dict) -> bool:
    """A row is usable when all four fields are set and the region is claimed."""
    civilization = row.get(CIVILIZATION_FIELD)
    return bool(
        civilization
        and civilization != UNCLAIMED_CIVILIZATION
        and row.get(COORDINATES_FIELD)
        and row.get(GALAXY_FIELD)
        and row.get(PAGE_NAME_FIELD)
    )


def filter_valid_rows(rows: List[dict]) -> List[dict]:
    return [row for row in rows if is_valid_row(row)]


class CargoClient:
    """Client for the wiki's cargoquery endpoint."""

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = 30,
                 retries: int = 0, user_agent: str = 'NMS-Glyph-Generator/1.0',
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            api_url: MediaWiki api.php URL
            timeout: Per-request timeout in seconds
            retries: Transport-level retries (0 leaves backoff to the scheduler)
            user_agent: User-Agent header sent with every request
            session: Pre-built session (tests)
        """
        self.api_url = api_url
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=retries,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

        self.session = session
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': user_agent
        })

    @staticmethod
    def build_params(offset: int, limit: int = DEFAULT_PAGE_SIZE) -> dict:
        """Query parameters for one page of the Regions table."""
        return {
            'action': 'cargoquery',
            'tables': 'Regions',
            'fields': REGION_FIELDS,
            'group_by': '_pageName',
            'order_by': '_pageName',
            'limit': str(limit),
            'offset': str(offset),
            'format': 'json',
            'origin': '*',
        }

    def fetch_page(self, offset: int = 0, limit: int = DEFAULT_PAGE_SIZE) -> List[dict]:
        """
        Fetch one page of region rows.

        Args:
            offset: Row offset
            limit: Page size

        Returns:
            List of raw row dicts (the "title" object of each result)

        Raises:
            FetchError: on network failure, non-200 status or a bad payload
        """
        logger.info(f"Fetching page with offset: {offset}")

        try:
            response = self.session.get(
                self.api_url,
                params=self.build_params(offset, limit),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise FetchError(f"Request failed at offset {offset}: {e}") from e

        if response.status_code != 200:
            raise FetchError(f"HTTP error! status: {response.status_code}",
                             status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON at offset {offset}: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(f"Unexpected payload at offset {offset}")

        if 'error' in data:
            error = data['error']
            info = error.get('info') if isinstance(error, dict) else error
            raise FetchError(f"API error at offset {offset}: {info}")

        rows = []
        for item in data.get('cargoquery') or []:
            title = item.get('title') if isinstance(item, dict) else None
            if isinstance(title, dict):
                rows.append(title)
            else:
                rows.append({})
        return rows
