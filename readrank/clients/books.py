"""External API client for book metadata."""

import httpx
import os
import logging
from typing import Optional

from dotenv import load_dotenv

from readrank.errors import CatalogError
from readrank.models.entities import BookRef

load_dotenv()

logger = logging.getLogger(__name__)


class BookAPIClient:
    """Client for fetching a single volume from the Google Books API."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.google_books_url = "https://www.googleapis.com/books/v1/volumes"
        self.google_api_key = api_key if api_key is not None else os.getenv('GOOGLE_BOOKS_API_KEY')
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def get_volume(self, volume_id: str) -> Optional[BookRef]:
        """Fetch a volume by its Google Books id.

        Returns:
            A ``BookRef`` for the volume, or None if Google Books has no such volume.

        Raises:
            CatalogError: On network errors, unexpected statuses, or a
                response that cannot be turned into a ``BookRef``.
        """
        if not volume_id:
            raise CatalogError("A volume id is required")

        params = {}
        if self.google_api_key:
            params["key"] = self.google_api_key

        logger.debug(f"Looking up Google Books volume: {volume_id}")
        try:
            async with self._client() as client:
                response = await client.get(f"{self.google_books_url}/{volume_id}", params=params)
            if response.status_code == 404:
                logger.debug(f"No Google Books volume {volume_id}")
                return None
            response.raise_for_status()
            return BookRef.from_google_volume(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"Google Books volume lookup failed with status {e.response.status_code}")
            raise CatalogError(f"Volume lookup failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Google Books volume lookup failed: {e}")
            raise CatalogError(f"Volume lookup failed: {e}") from e
        except ValueError as e:
            logger.error(f"Google Books returned an unusable volume {volume_id}: {e}")
            raise CatalogError(f"Unusable volume {volume_id}: {e}") from e
