"""
Turns an ordered page of favorite movie ids into a page of catalog summaries.

Fetches run concurrently and the page is returned only after every fetch has
finished. Results keep the order of the ids they came from, and a failed fetch
never fails the page.
"""

import asyncio
import logging
import math
from typing import List, Sequence

from config import (
    CATALOG_MAX_CONCURRENCY,
    CATALOG_TIMEOUT_SECONDS,
    FAILED_FETCH_POLICY,
    FAILED_FETCH_POLICIES as FAILURE_POLICIES,
)
from schemas import MovieSummary, PageEnvelope
from tmdb_client import CatalogFailure, CatalogResult, TMDbClient, UNAVAILABLE

logger = logging.getLogger(__name__)

DROP, PLACEHOLDER = FAILURE_POLICIES


def total_pages(total_results: int, limit: int) -> int:
    if total_results <= 0 or limit <= 0:
        return 0
    return math.ceil(total_results / limit)


class FavoritesAggregator:
    def __init__(
        self,
        client: TMDbClient,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
        max_concurrency: int = CATALOG_MAX_CONCURRENCY,
        failure_policy: str = FAILED_FETCH_POLICY,
    ):
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(f"Unknown failed fetch policy '{failure_policy}', expected one of {FAILURE_POLICIES}")
        self.client = client
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.failure_policy = failure_policy

    async def _fetch_one(self, movie_id: int, semaphore: asyncio.Semaphore) -> CatalogResult:
        await semaphore.acquire()
        loop = asyncio.get_running_loop()
        worker = loop.run_in_executor(None, self.client.fetch_movie, movie_id)

        def _worker_done(future: asyncio.Future) -> None:
            # The slot is only freed once the thread has really stopped calling TMDB,
            # even if this fetch already timed out.
            semaphore.release()
            if not future.cancelled():
                future.exception()

        worker.add_done_callback(_worker_done)

        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"TMDB fetch for movie {movie_id} timed out after {self.timeout}s")
            return CatalogFailure(movie_id=movie_id, kind=UNAVAILABLE, reason="timed out")
        except Exception as e:
            # One broken fetch must not take the page down with it
            logger.error(f"Unexpected error fetching movie {movie_id}: {str(e)}", exc_info=True)
            return CatalogFailure(movie_id=movie_id, kind=UNAVAILABLE, reason=str(e))

    async def fetch_all(self, movie_ids: Sequence[int]) -> List[MovieSummary]:
        """
        Fetch every id concurrently and return summaries in the order of movie_ids.
        Failed ids are dropped, or replaced by a placeholder under the placeholder policy.
        """
        if not movie_ids:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._fetch_one(movie_id, semaphore) for movie_id in movie_ids)
        )

        summaries: List[MovieSummary] = []
        failed = 0
        for movie_id, outcome in zip(movie_ids, outcomes):
            if isinstance(outcome, CatalogFailure):
                failed += 1
                if self.failure_policy == PLACEHOLDER:
                    summaries.append(MovieSummary.placeholder(movie_id))
                continue
            summaries.append(outcome)

        if failed:
            logger.info(f"{failed} of {len(movie_ids)} favorite movies could not be fetched from TMDB")
        return summaries

    async def build_page(
        self,
        movie_ids: Sequence[int],
        total_results: int,
        page: int,
        limit: int,
    ) -> PageEnvelope:
        """
        Assemble a page envelope. total_results/total_pages come from the stored entry
        count, so they can exceed the number of summaries actually returned.
        """
        results = await self.fetch_all(movie_ids) if movie_ids else []

        return PageEnvelope(
            results=results,
            total_pages=total_pages(total_results, limit),
            total_results=total_results,
            page=page,
        )
