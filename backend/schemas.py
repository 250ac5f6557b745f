"""
Pydantic models shared by the catalog client, the favorites core and the routes.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class MovieSummary(BaseModel):
    """
    Catalog projection of a movie as shown in favorite lists.
    Built fresh on every request; never persisted.
    """
    id: int
    title: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None  # absolute image URL or None
    release_date: Optional[str] = None
    vote_average: float = 0
    vote_count: int = 0
    backdrop_path: Optional[str] = None
    # Only set on placeholders for movies the catalog failed to return
    unavailable: Optional[bool] = None

    @classmethod
    def placeholder(cls, movie_id: int) -> "MovieSummary":
        return cls(id=movie_id, unavailable=True)


class MovieDetails(MovieSummary):
    """Extended fields used by the single-movie detail view."""
    runtime: Optional[int] = None
    genres: List[Dict[str, Any]] = Field(default_factory=list)
    production_companies: List[Dict[str, Any]] = Field(default_factory=list)
    production_countries: List[Dict[str, Any]] = Field(default_factory=list)
    spoken_languages: List[Dict[str, Any]] = Field(default_factory=list)
    budget: Optional[int] = None
    revenue: Optional[int] = None


class PageEnvelope(BaseModel):
    results: List[MovieSummary]
    total_pages: int
    total_results: int
    page: int

    def to_response(self) -> Dict[str, Any]:
        # exclude_unset keeps the "unavailable" marker off regular summaries
        return self.model_dump(exclude_unset=True)


class SharedPage(PageEnvelope):
    owner: str


class AddFavoriteRequest(BaseModel):
    tmdbMovieId: int = Field(..., gt=0, strict=True, description="TMDB movie id (positive integer)")


class FavoriteStatus(BaseModel):
    isFavorite: bool


class ShareTokenResponse(BaseModel):
    shareToken: str
