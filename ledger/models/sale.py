"""판매 데이터 모델"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from ledger.database import Base


class Sale(Base):
    """판매 기록 (월 단위, 도서 1권 기준)"""

    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)

    period = Column(String(7), nullable=False, index=True)  # MM-YYYY
    quantity = Column(Integer, nullable=False)

    # 금액 (소수 2자리)
    publisher_revenue = Column(Numeric(12, 2), nullable=False)
    author_royalty = Column(Numeric(12, 2), nullable=False)

    # 수동 인세 입력 여부 (True면 재계산하지 않음)
    royalty_overridden = Column(Boolean, nullable=False, default=False)
    paid = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    book = relationship("Book", back_populates="sales")

    def __repr__(self):
        return f"<Sale(book={self.book_id}, period={self.period}, paid={self.paid})>"
