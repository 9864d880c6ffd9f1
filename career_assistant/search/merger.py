"""Pagination merger for job search results.

Keeps one cumulative result set per turn. Pages are appended in order and
deduplicated by position id. Once a page fetch fails or comes back short,
the set stops offering more pages for the rest of its life.
"""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from career_assistant.errors import SearchFetchError
from career_assistant.models.positions import (
    Position,
    PositionPage,
    PositionSearchResponse,
    SearchResultSet,
)
from career_assistant.transport.base import PositionFetcher

logger = logging.getLogger(__name__)

PAGE_PARAM = "pageNo"
PAGE_SIZE_PARAM = "pageSize"


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class PaginationMerger:
    """Owns the search result set for the current turn.

    A new seed replaces the set. Every seed bumps a generation counter so a
    page fetch started for an older set can never write into a newer one.
    At most one page fetch runs at a time.
    """

    def __init__(self, fetch_positions: PositionFetcher) -> None:
        self._fetch = fetch_positions
        self._lock = asyncio.Lock()
        self._generation = 0
        self._reset()

    def _reset(self) -> None:
        self._seeded = False
        self._items: list[Position] = []
        self._ids: set[str] = set()
        self._total = 0
        self._params: dict[str, Any] = {}
        self._summary: str | None = None
        self._closed = False

    @property
    def result_set(self) -> SearchResultSet | None:
        """Snapshot of the current set, or None before the first seed."""
        if not self._seeded:
            return None
        return SearchResultSet(
            items=list(self._items),
            total_count=self._total,
            has_more=self.has_more,
            next_page_params=dict(self._params),
            summary=self._summary,
        )

    @property
    def has_more(self) -> bool:
        return self._seeded and not self._closed and len(self._items) < self._total

    @property
    def is_fetching(self) -> bool:
        return self._lock.locked()

    def clear(self) -> None:
        """Discard the current set."""
        self._generation += 1
        self._reset()

    def seed(
        self,
        result: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> SearchResultSet:
        """Replace the set with a ready-made search result.

        Args:
            result: Raw position search response.
            params: Search parameters to page from when the result carries
                no ``view_more_link``.

        Returns:
            The new result set.

        Raises:
            SearchFetchError: If the result is malformed or reports failure.
        """
        self.clear()
        self._populate(result, params)
        return self.result_set

    async def fetch_and_seed(self, params: dict[str, Any]) -> SearchResultSet | None:
        """Replace the set by running a position search with ``params``.

        Returns:
            The new result set, or None if another seed replaced it while
            the search was in flight.

        Raises:
            SearchFetchError: If the search fails.
        """
        self.clear()
        generation = self._generation

        try:
            raw = await self._fetch(dict(params))
        except Exception as e:
            logger.error(f"Position search failed: {e}")
            raise SearchFetchError(f"Position search failed: {e}") from e

        if generation != self._generation:
            logger.info("Discarding position search for a replaced result set")
            return None

        self._populate(raw, params)
        return self.result_set

    def _populate(self, raw: dict[str, Any], params: dict[str, Any] | None) -> None:
        try:
            response = PositionSearchResponse.model_validate(raw)
        except ValidationError as e:
            raise SearchFetchError(
                f"Malformed position search result: {e.error_count()} error(s)"
            ) from e
        if not response.ok:
            raise SearchFetchError(f"Position search returned code {response.code}")

        page = response.data or PositionPage()
        if response.view_more_link and response.view_more_link.params:
            self._params = dict(response.view_more_link.params)
        elif params:
            self._params = dict(params)
        self._summary = response.search_summary
        self._merge(page.items)
        self._total = page.count
        self._seeded = True
        if not page.items:
            self._closed = True

        logger.info(f"Search results seeded: {len(self._items)}/{self._total} positions")

    def _merge(self, raw_items: list[dict[str, Any]]) -> int:
        added = 0
        for raw in raw_items:
            try:
                position = Position.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed position: {e.error_count()} error(s)")
                continue
            if position.id in self._ids:
                logger.debug(f"Skipping duplicate position {position.id}")
                continue
            self._ids.add(position.id)
            self._items.append(position)
            added += 1
        return added

    def _expected_new_items(self) -> int:
        remaining = self._total - len(self._items)
        page_size = _as_int(self._params.get(PAGE_SIZE_PARAM), 0)
        if page_size > 0:
            return min(page_size, remaining)
        return min(1, remaining)

    async def request_more(self) -> SearchResultSet | None:
        """Fetch the next page and merge it into the set.

        Does nothing when no more pages are offered or a fetch is already
        running for this set.

        Returns:
            The updated result set.

        Raises:
            SearchFetchError: If the page fetch fails. The set is closed.
        """
        if not self.has_more or self._lock.locked():
            logger.debug("Ignoring request for more positions")
            return self.result_set

        async with self._lock:
            generation = self._generation
            cursor = _as_int(self._params.get(PAGE_PARAM), 0)
            params = {**self._params, PAGE_PARAM: cursor + 1}

            try:
                raw = await self._fetch(params)
                response = PositionSearchResponse.model_validate(raw)
            except Exception as e:
                if generation == self._generation:
                    self._closed = True
                logger.error(f"Failed to fetch more positions: {e}")
                raise SearchFetchError(f"Failed to fetch more positions: {e}") from e

            if generation != self._generation:
                logger.info("Discarding page for a replaced result set")
                return self.result_set

            if not response.ok or response.data is None:
                self._closed = True
                raise SearchFetchError(f"Position search returned code {response.code}")

            expected = self._expected_new_items()
            added = self._merge(response.data.items)
            self._total = response.data.count
            self._params = params
            if added < expected:
                logger.info(f"Short page ({added}/{expected}); no further pages offered")
                self._closed = True

            return self.result_set
