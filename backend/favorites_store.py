"""
Persistence adapter for favorite lists: ownership, membership and share tokens.
Every mutation is a single statement followed by a commit.
"""

import logging
import secrets
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import DuplicateEntry, InvalidRequest, NotFound
from models import FavoriteList, FavoriteListMovie, User

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 8
TOKEN_RETRIES = 5


def generate_share_token() -> str:
    """16 hex characters from 8 random bytes."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)


class FavoriteStore:
    def __init__(self, db: Session):
        self.db = db

    def get_list(self, user_id: int) -> Optional[FavoriteList]:
        return self.db.execute(
            select(FavoriteList).where(FavoriteList.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create_list(self, user_id: int) -> FavoriteList:
        """
        Return the user's list, creating it if absent.
        Inserts first and falls back to a re-read when the unique user_id constraint
        fires, so two first-time calls for one user never produce two lists.
        """
        favorite_list = self.get_list(user_id)
        if favorite_list is not None:
            return favorite_list

        for _ in range(TOKEN_RETRIES):
            try:
                favorite_list = FavoriteList(user_id=user_id, share_token=generate_share_token())
                self.db.add(favorite_list)
                self.db.commit()
                self.db.refresh(favorite_list)
                logger.info(f"Created favorite list {favorite_list.id} for user {user_id}")
                return favorite_list
            except IntegrityError:
                self.db.rollback()
                existing = self.get_list(user_id)
                if existing is not None:
                    return existing
                if self.db.get(User, user_id) is None:
                    raise NotFound("User not found")
                # user_id was free, so the share token collided; try another
                logger.debug(f"Share token collision creating list for user {user_id}, retrying")

        raise RuntimeError(f"Could not create favorite list for user {user_id}")

    def list_entries(self, list_id: int, page: int, limit: int) -> Tuple[List[int], int]:
        """
        One page of movie ids, most recently added first, plus the total entry count.
        A page past the end yields an empty sequence.
        """
        if page < 1 or limit < 1:
            raise InvalidRequest("page and limit must be positive integers")

        offset = (page - 1) * limit
        ids = self.db.execute(
            select(FavoriteListMovie.tmdb_movie_id)
            .where(FavoriteListMovie.favorite_list_id == list_id)
            .order_by(FavoriteListMovie.added_at.desc(), FavoriteListMovie.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        total = self.db.execute(
            select(func.count(FavoriteListMovie.id))
            .where(FavoriteListMovie.favorite_list_id == list_id)
        ).scalar_one()

        logger.debug(f"List {list_id} page {page} (limit {limit}): {len(ids)} of {total} entries")
        return list(ids), total

    def entry_exists(self, list_id: int, movie_id: int) -> bool:
        found = self.db.execute(
            select(FavoriteListMovie.id).where(
                FavoriteListMovie.favorite_list_id == list_id,
                FavoriteListMovie.tmdb_movie_id == movie_id,
            )
        ).first()
        return found is not None

    def add_entry(self, list_id: int, movie_id: int) -> FavoriteListMovie:
        entry = FavoriteListMovie(favorite_list_id=list_id, tmdb_movie_id=movie_id)
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntry("Movie already in favorites") from e
        self.db.refresh(entry)
        return entry

    def remove_entry(self, list_id: int, movie_id: int) -> bool:
        """Delete the entry if present. Returns whether a row was removed."""
        result = self.db.execute(
            delete(FavoriteListMovie).where(
                FavoriteListMovie.favorite_list_id == list_id,
                FavoriteListMovie.tmdb_movie_id == movie_id,
            )
        )
        self.db.commit()
        return result.rowcount > 0

    def rotate_token(self, list_id: int) -> str:
        for _ in range(TOKEN_RETRIES):
            token = generate_share_token()
            try:
                self.db.execute(
                    update(FavoriteList)
                    .where(FavoriteList.id == list_id)
                    .values(share_token=token)
                    .execution_options(synchronize_session="fetch")
                )
                self.db.commit()
                return token
            except IntegrityError:
                self.db.rollback()
                logger.debug(f"Share token collision rotating list {list_id}, retrying")

        raise RuntimeError(f"Could not rotate share token for list {list_id}")

    def find_by_token(self, token: str) -> FavoriteList:
        favorite_list = None
        if token:
            favorite_list = self.db.execute(
                select(FavoriteList).where(FavoriteList.share_token == token)
            ).scalar_one_or_none()
        if favorite_list is None:
            raise NotFound("Shared list not found")
        return favorite_list

    def owner_name(self, favorite_list: FavoriteList) -> str:
        return self.db.execute(
            select(User.name).where(User.id == favorite_list.user_id)
        ).scalar_one()
