"""시리즈 모델"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from ledger.database import Base


class Series(Base):
    """도서 시리즈 (소속 도서가 없으면 자동 삭제)"""
    __tablename__ = "series"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(300), unique=True, nullable=False, index=True)
    description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    books = relationship("Book", back_populates="series")

    def __repr__(self):
        return f"<Series(name='{self.name}')>"
