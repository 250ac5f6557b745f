import pytest

from errors import (
    DuplicateEntry,
    FavoritesError,
    InvalidRequest,
    NotFound,
    Unauthorized,
    UpstreamUnavailable,
    http_exception,
)


@pytest.mark.parametrize("error, status_code", [
    (NotFound("Shared list not found"), 404),
    (DuplicateEntry("Movie already in favorites"), 409),
    (InvalidRequest("TMDB Movie ID must be a positive integer"), 400),
    (UpstreamUnavailable("TMDB is down"), 503),
])
def test_http_exception_status_codes(error, status_code):
    exc = http_exception(error)

    assert exc.status_code == status_code
    assert exc.detail == error.message
    assert exc.headers is None


def test_unauthorized_maps_to_401_with_bearer_challenge():
    exc = http_exception(Unauthorized("Could not validate credentials"))

    assert exc.status_code == 401
    assert exc.headers == {"WWW-Authenticate": "Bearer"}


def test_unclassified_error_is_internal():
    exc = http_exception(FavoritesError())

    assert exc.status_code == 500
    assert exc.detail == "Internal server error"
