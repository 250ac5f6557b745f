from unittest.mock import MagicMock

import pytest
import requests

from config import CatalogConfig
from errors import UpstreamUnavailable
from schemas import MovieDetails, MovieSummary
from tmdb_client import CatalogFailure, TMDbClient, INVALID, NOT_FOUND, UNAVAILABLE


FIGHT_CLUB = {
    "id": 550,
    "title": "Clube da Luta",
    "overview": "Um homem deprimido...",
    "poster_path": "/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg",
    "release_date": "1999-10-15",
    "vote_average": 8.4,
    "vote_count": 27000,
    "backdrop_path": "/hZkgoQYus5vegHoetLkCJzb17zJ.jpg",
    "runtime": 139,
    "genres": [{"id": 18, "name": "Drama"}],
    "production_companies": [{"id": 508, "name": "Regency Enterprises", "logo_path": None}],
    "production_countries": [{"iso_3166_1": "US", "name": "United States of America"}],
    "spoken_languages": [{"iso_639_1": "en", "name": "English"}],
    "budget": 63000000,
    "revenue": 100853753,
}


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


def _client(response=None, side_effect=None, api_key="key"):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    config = CatalogConfig(api_key=api_key, base_url="https://tmdb.test/3", language="pt-BR", timeout=3)
    return TMDbClient(config, session=session), session


def test_fetch_movie_maps_summary_and_normalizes_poster():
    client, session = _client(_response(payload=FIGHT_CLUB))

    movie = client.fetch_movie(550)

    assert isinstance(movie, MovieSummary)
    assert movie.id == 550
    assert movie.title == "Clube da Luta"
    assert movie.poster_path == "https://image.tmdb.org/t/p/w500/pB8BM7pdSp6B6Ih7QZ4DrQ3PmJK.jpg"
    assert movie.vote_average == 8.4
    # summary view carries no detail fields
    assert not hasattr(movie, "runtime")

    args, kwargs = session.get.call_args
    assert args[0] == "https://tmdb.test/3/movie/550"
    assert kwargs["params"] == {"api_key": "key", "language": "pt-BR"}
    assert kwargs["timeout"] == 3


def test_fetch_movie_keeps_missing_poster_absent_and_defaults_votes():
    payload = {"id": 13, "title": "Forrest Gump", "poster_path": None,
               "vote_average": None, "release_date": "1994-06-23"}
    client, _ = _client(_response(payload=payload))

    movie = client.fetch_movie(13)

    assert movie.poster_path is None
    assert movie.vote_average == 0
    assert movie.vote_count == 0


def test_get_movie_details_includes_extended_fields():
    client, _ = _client(_response(payload=FIGHT_CLUB))

    details = client.get_movie_details(550)

    assert isinstance(details, MovieDetails)
    assert details.runtime == 139
    assert details.genres == [{"id": 18, "name": "Drama"}]
    assert details.budget == 63000000
    assert details.production_countries[0]["iso_3166_1"] == "US"
    assert details.poster_path.startswith("https://image.tmdb.org/t/p/w500/")


@pytest.mark.parametrize("status_code, kind", [
    (404, NOT_FOUND),
    (500, UNAVAILABLE),
    (503, UNAVAILABLE),
    (429, UNAVAILABLE),
    (401, INVALID),
])
def test_http_errors_are_returned_as_classified_failures(status_code, kind):
    client, _ = _client(_response(status_code=status_code))

    result = client.fetch_movie(550)

    assert isinstance(result, CatalogFailure)
    assert result.movie_id == 550
    assert result.kind == kind


def test_timeout_is_an_unavailable_failure():
    client, _ = _client(side_effect=requests.exceptions.Timeout("read timed out"))

    result = client.fetch_movie(550)

    assert isinstance(result, CatalogFailure)
    assert result.kind == UNAVAILABLE


def test_connection_error_is_an_unavailable_failure():
    client, _ = _client(side_effect=requests.exceptions.ConnectionError("refused"))

    assert client.fetch_movie(550).kind == UNAVAILABLE


def test_payload_without_id_is_invalid():
    client, _ = _client(_response(payload={"status_message": "weird"}))

    result = client.fetch_movie(550)

    assert isinstance(result, CatalogFailure)
    assert result.kind == INVALID


def test_missing_api_key_fails_without_network_call():
    client, session = _client(_response(payload=FIGHT_CLUB), api_key="")

    result = client.fetch_movie(550)

    assert isinstance(result, CatalogFailure)
    assert result.kind == UNAVAILABLE
    session.get.assert_not_called()


def test_search_movies_returns_page_envelope():
    payload = {
        "page": 2,
        "total_pages": 5,
        "total_results": 90,
        "results": [FIGHT_CLUB, {"id": 680, "title": "Pulp Fiction", "poster_path": None}],
    }
    client, session = _client(_response(payload=payload))

    envelope = client.search_movies("fight", page=2)

    assert [movie.id for movie in envelope.results] == [550, 680]
    assert envelope.total_pages == 5
    assert envelope.total_results == 90
    assert envelope.page == 2
    assert session.get.call_args.kwargs["params"]["query"] == "fight"


def test_search_movies_raises_when_catalog_is_down():
    client, _ = _client(side_effect=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(UpstreamUnavailable):
        client.search_movies("fight")


def test_image_url_handles_absent_path():
    client, _ = _client(_response(payload=FIGHT_CLUB))

    assert client.image_url(None) is None
    assert client.image_url("") is None
    assert client.image_url("/x.jpg") == "https://image.tmdb.org/t/p/w500/x.jpg"
