from typing import Optional

from database import Base
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Author(Base):
    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # one-to-many: author → books, removed together with the author
    books: Mapped[list["Book"]] = relationship(
        back_populates="author",
        cascade="all",
        order_by="Book.id",
    )

    def __repr__(self) -> str:
        return f"<Author(id={self.id}, name='{self.first_name} {self.last_name}')>"


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    cover_text: Mapped[str | None] = mapped_column(Text)

    # nullable: a book may be created without an author or detached from one
    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("authors.id", ondelete="CASCADE"), index=True
    )
    author: Mapped[Optional["Author"]] = relationship(back_populates="books")

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}')>"
