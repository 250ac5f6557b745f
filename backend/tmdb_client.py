import requests
import logging
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel
from config import CatalogConfig, get_catalog_config
from errors import NotFound, UpstreamUnavailable
from schemas import MovieSummary, MovieDetails, PageEnvelope

logger = logging.getLogger(__name__)

# Failure kinds
NOT_FOUND = "not_found"
UNAVAILABLE = "unavailable"
INVALID = "invalid"


class CatalogFailure(BaseModel):
    """Outcome of a catalog fetch that produced no movie. Returned, never raised."""
    movie_id: int
    kind: str
    reason: str = ""


CatalogResult = Union[MovieSummary, CatalogFailure]


def _classify_request_error(error: requests.exceptions.RequestException) -> str:
    if isinstance(error, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return UNAVAILABLE
    response = getattr(error, "response", None)
    if response is not None:
        if response.status_code == 404:
            return NOT_FOUND
        if response.status_code == 429 or response.status_code >= 500:
            return UNAVAILABLE
    return INVALID


class TMDbClient:
    def __init__(self, config: CatalogConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.session = session or requests.Session()

    def _get(self, path: str, **params) -> Dict[str, Any]:
        params.update({
            'api_key': self.config.api_key,
            'language': self.config.language,
        })
        response = self.session.get(
            f"{self.base_url}{path}",
            params=params,
            timeout=self.config.timeout
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected TMDB payload type: {type(data).__name__}")
        return data

    def image_url(self, path: Optional[str]) -> Optional[str]:
        """Turn a relative TMDB image path into an absolute URL; absence stays absent."""
        if not path:
            return None
        return f"{self.config.image_base_url.rstrip('/')}{path}"

    def _to_summary(self, data: Dict[str, Any]) -> MovieSummary:
        return MovieSummary(
            id=data['id'],
            title=data.get('title'),
            overview=data.get('overview'),
            poster_path=self.image_url(data.get('poster_path')),
            release_date=data.get('release_date'),
            vote_average=data.get('vote_average') or 0,
            vote_count=data.get('vote_count') or 0,
            backdrop_path=data.get('backdrop_path'),
        )

    def _to_details(self, data: Dict[str, Any]) -> MovieDetails:
        summary = self._to_summary(data)
        return MovieDetails(
            **summary.model_dump(exclude_unset=True),
            runtime=data.get('runtime'),
            genres=data.get('genres') or [],
            production_companies=data.get('production_companies') or [],
            production_countries=data.get('production_countries') or [],
            spoken_languages=data.get('spoken_languages') or [],
            budget=data.get('budget'),
            revenue=data.get('revenue'),
        )

    def _fetch(self, movie_id: int, detailed: bool) -> Union[MovieSummary, MovieDetails, CatalogFailure]:
        if not self.config.api_key:
            logger.warning("TMDb API key not configured")
            return CatalogFailure(movie_id=movie_id, kind=UNAVAILABLE, reason="TMDb API key not configured")

        try:
            data = self._get(f"/movie/{movie_id}")
            if 'id' not in data:
                raise ValueError("TMDB payload has no id")
            return self._to_details(data) if detailed else self._to_summary(data)

        except requests.exceptions.RequestException as e:
            kind = _classify_request_error(e)
            log = logger.warning if kind == NOT_FOUND else logger.error
            log(f"Error fetching TMDB movie {movie_id} ({kind}): {str(e)}")
            return CatalogFailure(movie_id=movie_id, kind=kind, reason=str(e))
        except ValueError as e:
            logger.error(f"Invalid TMDB response for movie {movie_id}: {str(e)}")
            return CatalogFailure(movie_id=movie_id, kind=INVALID, reason=str(e))

    def fetch_movie(self, movie_id: int) -> CatalogResult:
        """
        Fetch one movie as a summary.
        Failures come back as CatalogFailure so a single missing movie never aborts a page.
        """
        return self._fetch(movie_id, detailed=False)

    def get_movie_details(self, movie_id: int) -> Union[MovieDetails, CatalogFailure]:
        """Fetch one movie with the extended detail fields."""
        return self._fetch(movie_id, detailed=True)

    def _get_page(self, path: str, page: int, **params) -> PageEnvelope:
        if not self.config.api_key:
            logger.warning("TMDb API key not configured")
            raise UpstreamUnavailable("TMDB client not configured")

        try:
            data = self._get(path, page=page, **params)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error requesting TMDB {path}: {str(e)}")
            if _classify_request_error(e) == NOT_FOUND:
                raise NotFound(f"TMDB resource {path} not found") from e
            raise UpstreamUnavailable(f"Error contacting TMDB: {str(e)}") from e
        except ValueError as e:
            logger.error(f"Invalid TMDB response for {path}: {str(e)}")
            raise UpstreamUnavailable("Invalid response from TMDB") from e

        results = [self._to_summary(movie) for movie in data.get('results', []) if 'id' in movie]
        return PageEnvelope(
            results=results,
            total_pages=data.get('total_pages', 0),
            total_results=data.get('total_results', 0),
            page=page,
        )

    def search_movies(self, query: str, page: int = 1) -> PageEnvelope:
        """Search the catalog by title. Raises UpstreamUnavailable when TMDB can't answer."""
        return self._get_page("/search/movie", page, query=query)

    def get_popular_movies(self, page: int = 1) -> PageEnvelope:
        return self._get_page("/movie/popular", page)


_client: Optional[TMDbClient] = None


def get_tmdb_client() -> TMDbClient:
    """FastAPI dependency returning the process-wide client."""
    global _client
    if _client is None:
        _client = TMDbClient(get_catalog_config())
    return _client
