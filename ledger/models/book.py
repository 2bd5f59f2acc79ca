"""도서 모델"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from ledger.database import Base
from ledger.models.author import book_authors


class Book(Base):
    """도서 (작가 1명 이상, 기본 인세율 보유)"""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)

    # 기본 정보
    title = Column(String(500), nullable=False, index=True)
    isbn13 = Column(String(13), unique=True, index=True)  # 숫자만 저장
    isbn10 = Column(String(10), unique=True, index=True)

    # 출간월/연도 (연도가 있으면 월도 필수)
    publication_month = Column(String(2))  # "01" ~ "12"
    publication_year = Column(Integer)

    # 기본 인세율 (%) - 판매 생성/수정 시에만 적용
    default_royalty_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("50"))

    # 시리즈
    series_id = Column(Integer, ForeignKey("series.id"), index=True)
    series_order = Column(Integer)  # 1부터

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    authors = relationship(
        "Author", secondary=book_authors, back_populates="books", order_by="Author.name"
    )
    series = relationship("Series", back_populates="books")
    sales = relationship("Sale", back_populates="book")

    def __repr__(self):
        return f"<Book(id={self.id}, title='{(self.title or '')[:30]}')>"

    @property
    def author_names(self) -> list:
        """작가명 (이름순)"""
        return sorted(a.name for a in self.authors)

    @property
    def author_ids(self) -> tuple:
        """작가 ID 정렬 튜플 (작가 그룹 키)"""
        return tuple(sorted(a.id for a in self.authors))
