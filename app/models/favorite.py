"""
User Favorite Model

A (user, book) membership marker. Favorited books count toward a user's
genre/author preferences and are never recommended back to that user.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserFavorite(Base):
    """
    Favorite marker, unique per (user, book) pair.

    Table: user_favorites
    """

    __tablename__ = "user_favorites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    book = relationship("Book", back_populates="favorites")
    user = relationship("User", back_populates="favorites")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_favorite_user_book"),
    )

    def __repr__(self) -> str:
        return f"<UserFavorite(user_id={self.user_id}, book_id={self.book_id})>"
