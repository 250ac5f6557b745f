import logging

from aggregation import FavoritesAggregator
from favorites_store import FavoriteStore
from schemas import SharedPage

logger = logging.getLogger(__name__)


class ShareTokenGateway:
    """
    Public read access to a favorite list through its share token.
    Holding the token is enough to read; rotating it requires the owner's identity.
    """

    def __init__(self, store: FavoriteStore, aggregator: FavoritesAggregator):
        self.store = store
        self.aggregator = aggregator

    async def get_shared(self, token: str, page: int, limit: int) -> SharedPage:
        """Raises NotFound when the token does not resolve to a list."""
        favorite_list = self.store.find_by_token(token)
        owner = self.store.owner_name(favorite_list)

        movie_ids, total = self.store.list_entries(favorite_list.id, page, limit)
        envelope = await self.aggregator.build_page(movie_ids, total, page, limit)
        return SharedPage(owner=owner, **envelope.model_dump(exclude_unset=True))

    def rotate(self, user_id: int) -> str:
        """
        Issue a new token for the user's list (creating the list if needed).
        The previous token stops resolving as soon as this returns.
        """
        favorite_list = self.store.get_or_create_list(user_id)
        token = self.store.rotate_token(favorite_list.id)
        logger.info(f"Rotated share token for favorite list {favorite_list.id} (user {user_id})")
        return token
