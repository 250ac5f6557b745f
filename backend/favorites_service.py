"""
Favorites service: the operations exposed at the HTTP boundary.

Wires the store, the aggregation engine and the share-token gateway together
and is the place where storage failures are logged before they surface as
internal errors.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aggregation import FavoritesAggregator
from config import FAVORITES_PAGE_LIMIT, SHARED_PAGE_LIMIT
from errors import InvalidRequest
from favorites_store import FavoriteStore
from schemas import FavoriteStatus, PageEnvelope, SharedPage, ShareTokenResponse
from share_tokens import ShareTokenGateway

logger = logging.getLogger(__name__)


def _validate_movie_id(movie_id) -> int:
    if isinstance(movie_id, bool) or not isinstance(movie_id, int) or movie_id <= 0:
        raise InvalidRequest("TMDB Movie ID must be a positive integer")
    return movie_id


def _validate_pagination(page: int, limit: int) -> None:
    if page < 1 or limit < 1:
        raise InvalidRequest("page and limit must be positive integers")


class FavoritesService:
    def __init__(self, db: Session, aggregator: FavoritesAggregator):
        self.db = db
        self.store = FavoriteStore(db)
        self.aggregator = aggregator
        self.shares = ShareTokenGateway(self.store, aggregator)

    @contextmanager
    def _storage(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {str(e)}")
            raise

    async def list_favorites(
        self, user_id: int, page: int = 1, limit: int = FAVORITES_PAGE_LIMIT
    ) -> PageEnvelope:
        """
        A page of the user's favorites, most recent first.
        A user without a list yet gets an empty page rather than an error.
        """
        _validate_pagination(page, limit)
        with self._storage("listing favorites"):
            favorite_list = self.store.get_list(user_id)
            if favorite_list is None:
                return PageEnvelope(results=[], total_pages=0, total_results=0, page=page)
            movie_ids, total = self.store.list_entries(favorite_list.id, page, limit)

        return await self.aggregator.build_page(movie_ids, total, page, limit)

    def add_favorite(self, user_id: int, movie_id: int) -> Dict[str, str]:
        """Raises DuplicateEntry if the movie is already in the list."""
        movie_id = _validate_movie_id(movie_id)
        with self._storage("adding a favorite"):
            favorite_list = self.store.get_or_create_list(user_id)
            self.store.add_entry(favorite_list.id, movie_id)
        logger.info(f"User {user_id} added movie {movie_id} to favorites")
        return {"message": "Movie added to favorites"}

    def remove_favorite(self, user_id: int, movie_id: int) -> Dict[str, str]:
        movie_id = _validate_movie_id(movie_id)
        with self._storage("removing a favorite"):
            favorite_list = self.store.get_list(user_id)
            removed = favorite_list is not None and self.store.remove_entry(favorite_list.id, movie_id)
        if removed:
            logger.info(f"User {user_id} removed movie {movie_id} from favorites")
        else:
            logger.debug(f"User {user_id} removed movie {movie_id} which was not a favorite")
        return {"message": "Movie removed from favorites"}

    def check_favorite(self, user_id: Optional[int], movie_id: int) -> FavoriteStatus:
        """Anonymous callers always get isFavorite=False."""
        movie_id = _validate_movie_id(movie_id)
        if user_id is None:
            return FavoriteStatus(isFavorite=False)
        with self._storage("checking a favorite"):
            favorite_list = self.store.get_list(user_id)
            if favorite_list is None:
                return FavoriteStatus(isFavorite=False)
            return FavoriteStatus(isFavorite=self.store.entry_exists(favorite_list.id, movie_id))

    async def get_shared_list(
        self, share_token: str, page: int = 1, limit: int = SHARED_PAGE_LIMIT
    ) -> SharedPage:
        """No authentication; raises NotFound for unknown tokens."""
        _validate_pagination(page, limit)
        with self._storage("reading a shared list"):
            return await self.shares.get_shared(share_token, page, limit)

    def rotate_share_token(self, user_id: int) -> ShareTokenResponse:
        with self._storage("rotating a share token"):
            token = self.shares.rotate(user_id)
        return ShareTokenResponse(shareToken=token)
