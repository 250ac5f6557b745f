"""
Shared fixtures: an in-memory SQLite database per test and a fake TMDB catalog.

Environment variables are set before any backend module is imported so that
config.py picks them up.
"""

from __future__ import annotations

import os
import threading
import time

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TMDB_API_KEY"] = "test-key"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["FAILED_FETCH_POLICY"] = "drop"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db, init_db
from main import app
from models import User
from schemas import MovieSummary
from tmdb_client import CatalogFailure, UNAVAILABLE, NOT_FOUND, get_tmdb_client


class FakeCatalog:
    """
    Stands in for TMDbClient.fetch_movie / get_movie_details.
    Unknown ids come back as not_found; ids in `failing` as unavailable;
    `delays` makes individual fetches slow; `peak` records the most fetches
    that were ever running at once.
    """

    def __init__(self, movies=None, failing=(), delays=None):
        self.movies = dict(movies or {})
        self.failing = set(failing)
        self.delays = dict(delays or {})
        self.calls = []
        self.completed = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def fetch_movie(self, movie_id):
        with self._lock:
            self.calls.append(movie_id)
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        delay = self.delays.get(movie_id)
        if delay:
            time.sleep(delay)
        with self._lock:
            self.in_flight -= 1
            self.completed.append(movie_id)
        if movie_id in self.failing:
            return CatalogFailure(movie_id=movie_id, kind=UNAVAILABLE, reason="boom")
        if movie_id not in self.movies:
            return CatalogFailure(movie_id=movie_id, kind=NOT_FOUND, reason="404")
        return MovieSummary(id=movie_id, title=self.movies[movie_id])

    get_movie_details = fetch_movie


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def catalog():
    return FakeCatalog(movies={
        550: "Fight Club",
        13: "Forrest Gump",
        680: "Pulp Fiction",
        603: "The Matrix",
    })


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make_user(name="Ana", email=None):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            hashed_password="not-a-real-hash",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def client(session_factory, catalog):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tmdb_client] = lambda: catalog
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    def _register(name="Ana Silva", email="ana@example.com", password="secret123"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture()
def auth_headers(register):
    token = register()["token"]
    return {"Authorization": f"Bearer {token}"}
