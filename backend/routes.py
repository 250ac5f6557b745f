from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from aggregation import FavoritesAggregator
from auth import (
    UserCreate,
    UserLogin,
    UserUpdate,
    UserResponse,
    AuthResponse,
    authenticate_user,
    create_user,
    update_user,
    delete_user,
    get_current_user,
    get_current_user_optional,
    token_for_user,
)
from config import FAVORITES_PAGE_LIMIT, SHARED_PAGE_LIMIT, MAX_PAGE_LIMIT
from database import get_db
from errors import FavoritesError, DuplicateEntry, Unauthorized, http_exception
from favorites_service import FavoritesService
from models import User
from schemas import AddFavoriteRequest
from tmdb_client import TMDbClient, CatalogFailure, NOT_FOUND, get_tmdb_client
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _internal_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(error)}", exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error")


def _success(message: str, data: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message}
    if data is not None:
        body["data"] = data
    return body


def get_aggregator(client: TMDbClient = Depends(get_tmdb_client)) -> FavoritesAggregator:
    return FavoritesAggregator(client)


def get_favorites_service(
    db: Session = Depends(get_db),
    aggregator: FavoritesAggregator = Depends(get_aggregator),
) -> FavoritesService:
    return FavoritesService(db, aggregator)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@router.post("/api/auth/register", status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user. Their favorite list is created in the same transaction.
    """
    try:
        user = create_user(db, user_data)
    except DuplicateEntry as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        raise _internal_error("registering user", e)

    return AuthResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
        token=token_for_user(user),
    ).model_dump()


@router.post("/api/auth/login")
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = authenticate_user(db, credentials.email, credentials.password)
    if user is None:
        raise http_exception(Unauthorized("Invalid credentials"))

    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=token_for_user(user),
    ).model_dump()


@router.get("/api/auth/profile")
@router.get("/api/users/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return _success("Profile retrieved successfully", UserResponse.model_validate(current_user).model_dump())


@router.put("/api/users/profile")
def update_profile(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name and/or email. An email owned by another user is rejected with 400."""
    try:
        user = update_user(db, current_user, user_data)
    except DuplicateEntry as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        raise _internal_error("updating user profile", e)

    return _success("Profile updated successfully", {"user": UserResponse.model_validate(user).model_dump()})


@router.delete("/api/users/profile")
def delete_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete the account; the favorite list and its share token go with it."""
    try:
        delete_user(db, current_user)
    except Exception as e:
        raise _internal_error("deleting user", e)

    return _success("User deleted successfully")


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@router.get("/api/favorites")
async def get_favorites(
    page: int = Query(1, ge=1),
    limit: int = Query(FAVORITES_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    current_user: User = Depends(get_current_user),
    service: FavoritesService = Depends(get_favorites_service),
):
    """
    Get the current user's favorites, most recently added first.
    Movies TMDB fails to return are left out of results; totals still count them.
    """
    try:
        envelope = await service.list_favorites(current_user.id, page, limit)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("getting favorites", e)

    return _success("Favorites retrieved successfully", envelope.to_response())


@router.post("/api/favorites", status_code=status.HTTP_201_CREATED)
def add_favorite(
    request: AddFavoriteRequest,
    current_user: User = Depends(get_current_user),
    service: FavoritesService = Depends(get_favorites_service),
):
    try:
        result = service.add_favorite(current_user.id, request.tmdbMovieId)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("adding favorite", e)

    return _success(result["message"])


@router.delete("/api/favorites/{tmdb_movie_id}")
def remove_favorite(
    tmdb_movie_id: int,
    current_user: User = Depends(get_current_user),
    service: FavoritesService = Depends(get_favorites_service),
):
    """Remove a movie from favorites. Removing a movie that isn't there still succeeds."""
    try:
        result = service.remove_favorite(current_user.id, tmdb_movie_id)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("removing favorite", e)

    return _success(result["message"])


@router.get("/api/favorites/check/{tmdb_movie_id}")
def check_favorite(
    tmdb_movie_id: int,
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: FavoritesService = Depends(get_favorites_service),
):
    """Anonymous callers get isFavorite=false instead of a 401."""
    user_id = current_user.id if current_user is not None else None
    try:
        result = service.check_favorite(user_id, tmdb_movie_id)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("checking favorite", e)

    return _success("Favorite status checked", result.model_dump())


@router.post("/api/favorites/share-token")
def generate_share_token(
    current_user: User = Depends(get_current_user),
    service: FavoritesService = Depends(get_favorites_service),
):
    """Issue a new share token; the previous one stops working immediately."""
    try:
        result = service.rotate_share_token(current_user.id)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("generating share token", e)

    return _success("Share token generated successfully", result.model_dump())


@router.get("/api/favorites/share/{share_token}")
async def get_shared_list(
    share_token: str,
    page: int = Query(1, ge=1),
    limit: int = Query(SHARED_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    service: FavoritesService = Depends(get_favorites_service),
):
    """Public view of a favorite list. No authentication; the token is the credential."""
    try:
        shared = await service.get_shared_list(share_token, page, limit)
    except FavoritesError as e:
        raise http_exception(e)
    except Exception as e:
        raise _internal_error("getting shared list", e)

    return _success("Shared list retrieved successfully", shared.to_response())


# ---------------------------------------------------------------------------
# Catalog browsing
# ---------------------------------------------------------------------------

@router.get("/api/movies/search")
def search_movies(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    client: TMDbClient = Depends(get_tmdb_client),
):
    if not query.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required")
    try:
        envelope = client.search_movies(query.strip(), page)
    except FavoritesError as e:
        raise http_exception(e)

    return _success("Movies retrieved successfully", envelope.to_response())


@router.get("/api/movies/popular")
def get_popular_movies(
    page: int = Query(1, ge=1),
    client: TMDbClient = Depends(get_tmdb_client),
):
    try:
        envelope = client.get_popular_movies(page)
    except FavoritesError as e:
        raise http_exception(e)

    return _success("Popular movies retrieved successfully", envelope.to_response())


@router.get("/api/movies/{movie_id}")
def get_movie_details(
    movie_id: int,
    client: TMDbClient = Depends(get_tmdb_client),
):
    """Full TMDB details for one movie, including runtime, genres and production data."""
    if movie_id <= 0:
        raise HTTPException(status_code=400, detail="Movie id must be a positive integer")

    details = client.get_movie_details(movie_id)
    if isinstance(details, CatalogFailure):
        if details.kind == NOT_FOUND:
            raise HTTPException(status_code=404, detail=f"Movie with TMDB ID {movie_id} not found")
        raise HTTPException(status_code=503, detail="Error fetching movie details from TMDB")

    return _success("Movie details retrieved successfully", details.model_dump(exclude_unset=True))
