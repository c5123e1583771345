"""
SQLAlchemy Models Package

Model Relationships:
- Genre <-> Book: Many-to-Many through book_genres
- User -> Review <- Book: a review belongs to exactly one (user, book) pair
- User -> UserFavorite <- Book: favorite markers, unique per pair

Import all models here so SQLAlchemy can resolve the string-based
relationships and so Base.metadata.create_all() sees every table.
"""

from app.models.genre import Genre
from app.models.book import Book, book_genres
from app.models.user import User
from app.models.review import Review
from app.models.favorite import UserFavorite

__all__ = [
    "Genre",
    "Book",
    "book_genres",
    "User",
    "Review",
    "UserFavorite",
]
