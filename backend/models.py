from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    favorite_list = relationship(
        "FavoriteList",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

class FavoriteList(Base):
    __tablename__ = "favorite_lists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    share_token = Column(String(32), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="favorite_list")
    movies = relationship(
        "FavoriteListMovie",
        back_populates="favorite_list",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

class FavoriteListMovie(Base):
    __tablename__ = "favorite_list_movies"
    __table_args__ = (
        UniqueConstraint("favorite_list_id", "tmdb_movie_id", name="uq_favorite_list_movie"),
    )

    id = Column(Integer, primary_key=True, index=True)
    favorite_list_id = Column(
        Integer, ForeignKey("favorite_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tmdb_movie_id = Column(Integer, nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    favorite_list = relationship("FavoriteList", back_populates="movies")
