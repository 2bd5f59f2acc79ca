"""SQLAlchemy 모델"""
from ledger.models.author import Author, book_authors
from ledger.models.series import Series
from ledger.models.book import Book
from ledger.models.sale import Sale

__all__ = [
    "Author",
    "book_authors",
    "Series",
    "Book",
    "Sale",
]
