"""
Remote source client for the published list of circulars.
Scrapes the listing pages with httpx and BeautifulSoup, with retry and throttling.
"""

import asyncio
import re
from typing import List, Optional, Protocol
from urllib.parse import urljoin

import httpx
import structlog
from asyncio_throttle import Throttler
from bs4 import BeautifulSoup

from utilities.config import PollerConfig, config as default_config
from .exceptions import TransientIOError
from .models import Circular

logger = structlog.get_logger(__name__)


class CircularSource(Protocol):
    """Port for the remote list of circulars."""

    async def fetch(self) -> List[Circular]:
        """
        Return the full list, or raise TransientIOError.

        Order is stable-prefix: the oldest item first, new items appended
        at the tail, so a previously fetched list is a prefix of a later one.
        """
        ...


class HttpCircularSource:
    """
    Fetches circulars from the school website listing pages.

    Either the whole list is returned or TransientIOError is raised; a
    partially downloaded list would look like a shrink to the diff engine.
    """

    def __init__(self, settings: Optional[PollerConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the source client.

        Args:
            settings: Poller configuration (defaults to the global config)
            transport: Optional httpx transport, used to stub the network
        """
        self.settings = settings or default_config
        self.throttler = Throttler(rate_limit=self.settings.rate_limit_per_second)
        self.id_pattern = re.compile(self.settings.circular_id_pattern)
        self.logger = logger.bind(component="circular_source")

        self.client_config = {
            "timeout": self.settings.request_timeout,
            "headers": self.settings.get_headers(),
            "follow_redirects": True,
        }
        if transport is not None:
            self.client_config["transport"] = transport

    async def fetch(self) -> List[Circular]:
        """
        Download and parse every listing page.

        Pages are requested one at a time until the first missing or empty
        page. The site lists the newest circular first, so the assembled
        list is reversed: the oldest circular comes first and newly
        published ones are appended at the end.

        Returns:
            Circulars oldest first, one entry per id

        Raises:
            TransientIOError: if any page could not be downloaded
        """
        listed = []
        seen_ids = set()

        async with httpx.AsyncClient(**self.client_config) as client:
            for page in range(1, self.settings.max_pages + 1):
                page_circulars = await self._fetch_page(client, page)
                if not page_circulars:
                    break

                for circular in page_circulars:
                    if circular.id in seen_ids:
                        self.logger.warning("Duplicate circular id skipped", circular_id=circular.id)
                        continue
                    seen_ids.add(circular.id)
                    listed.append(circular)
            else:
                self.logger.warning(
                    "Page limit reached before the end of pagination",
                    max_pages=self.settings.max_pages
                )

        circulars = list(reversed(listed))
        self.logger.info("Fetched circulars", count=len(circulars))
        return circulars

    async def _fetch_page(self, client: httpx.AsyncClient, page: int) -> Optional[List[Circular]]:
        """Fetch one listing page. Returns None when the page does not exist."""
        page_url = self.settings.get_page_url(page)

        async with self.throttler:
            response = await self._make_request_with_retry(client, page_url, allow_missing=page > 1)

        if response is None:
            self.logger.debug("Listing page not found, end of pagination", page=page, url=page_url)
            return None

        return self.parse_circulars(response.text, page_url)

    async def _make_request_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        allow_missing: bool = False
    ) -> Optional[httpx.Response]:
        """
        Make HTTP request with retry logic and exponential backoff.

        Args:
            client: HTTP client instance
            url: URL to request
            allow_missing: Return None instead of failing on 404

        Returns:
            HTTP response, or None for an allowed 404
        """
        last_exception = None

        for attempt in range(self.settings.retry_attempts + 1):
            try:
                response = await client.get(url)
                if allow_missing and response.status_code == 404:
                    return None
                response.raise_for_status()
                return response

            except httpx.HTTPError as e:
                last_exception = e

                if attempt < self.settings.retry_attempts:
                    delay = self.settings.retry_delay * (2 ** attempt)  # Exponential backoff
                    self.logger.warning(
                        "Retrying request",
                        url=url,
                        attempt=attempt + 1,
                        max_attempts=self.settings.retry_attempts,
                        delay_seconds=delay
                    )
                    await asyncio.sleep(delay)

        self.logger.error(
            "Request failed after retries",
            url=url,
            retries=self.settings.retry_attempts,
            error=str(last_exception)
        )
        raise TransientIOError(f"Failed to fetch {url}: {last_exception}", url=url) from last_exception

    def parse_circulars(self, html: str, page_url: str) -> List[Circular]:
        """
        Extract circulars from a listing page.

        Args:
            html: Page HTML
            page_url: URL the page was fetched from, used to resolve links

        Returns:
            Circulars in document order
        """
        soup = BeautifulSoup(html, 'html.parser')
        circulars = []

        for element in soup.select(self.settings.circular_selector):
            name = element.get_text(strip=True)
            match = self.id_pattern.search(name)
            href = element.get('href')

            if not match or not href:
                self.logger.warning("Skipping unparseable circular entry", text=name, url=page_url)
                continue

            circulars.append(Circular(
                id=int(match.group(1)),
                name=name,
                url=urljoin(page_url, href)
            ))

        return circulars
