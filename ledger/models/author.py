"""작가 / 도서-작가 연결 모델"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
from ledger.database import Base


# 도서 ↔ 작가 (다대다)
book_authors = Table(
    "book_authors",
    Base.metadata,
    Column("book_id", Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("author_id", Integer, ForeignKey("authors.id"), primary_key=True, index=True),
)


class Author(Base):
    """작가"""
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    books = relationship("Book", secondary=book_authors, back_populates="authors")

    def __repr__(self):
        return f"<Author(id={self.id}, name='{self.name}')>"
