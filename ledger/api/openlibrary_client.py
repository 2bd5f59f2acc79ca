"""
Open Library 도서 메타데이터 클라이언트
======================================
ISBN으로 제목/작가/ISBN/출간월·연도 조회 (도서 등록 화면 자동 채우기)

사용법:
    client = OpenLibraryClient()
    meta = client.fetch_by_isbn("978-0-261-10221-7")
    print(meta.title, meta.authors, meta.publication_year)

실패는 모두 ExternalLookupError로 올라오며 로컬 데이터는 건드리지 않는다.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

import requests

from ledger.config import settings
from ledger.errors import ExternalLookupError
from ledger.utils.retry import RetryConfig, retry_on_exception

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"\b(19|20)[0-9]{2}\b")
NUMERIC_MONTH_PATTERN = re.compile(r"\b(0?[1-9]|1[0-2])\b")

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
MONTH_ABBRS = [name[:3] for name in MONTH_NAMES]


@dataclass
class BookMetadata:
    """조회 결과"""
    title: str
    authors: List[str] = field(default_factory=list)
    isbn13: Optional[str] = None
    isbn10: Optional[str] = None
    publication_year: Optional[int] = None
    publication_month: Optional[str] = None

    @property
    def author_display(self) -> str:
        return ", ".join(self.authors)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "authors": self.authors,
            "author_display": self.author_display,
            "isbn13": self.isbn13,
            "isbn10": self.isbn10,
            "publication_year": self.publication_year,
            "publication_month": self.publication_month,
        }


def normalize_lookup_isbn(isbn: str) -> str:
    """공백/하이픈 제거"""
    return re.sub(r"[-\s]", "", isbn or "")


def extract_publication(publish_date: Optional[str], first_publish_date: Optional[str] = None):
    """
    출간일 문자열 → (연도, 월)

    - 연도: 19xx / 20xx
    - 월: 영문 월 이름/약어 우선, 없으면 1~12 숫자
    - publish_date가 없으면 first_publish_date에서 연도만

    예:
        "March 2021"  → (2021, "03")
        "2019-7-15"   → (2019, "07")
        "1954"        → (1954, None)
    """
    year = None
    month = None

    if publish_date:
        text = publish_date.strip()

        year_match = YEAR_PATTERN.search(text)
        if year_match:
            year = int(year_match.group(0))

        lower = text.lower()
        for i, (name, abbr) in enumerate(zip(MONTH_NAMES, MONTH_ABBRS)):
            if name in lower or abbr in lower:
                month = f"{i + 1:02d}"
                break

        if month is None:
            month_match = NUMERIC_MONTH_PATTERN.search(text)
            if month_match:
                month = month_match.group(0).zfill(2)

    elif first_publish_date:
        year_match = YEAR_PATTERN.search(first_publish_date)
        if year_match:
            year = int(year_match.group(0))

    return year, month


class OpenLibraryClient:
    """Open Library ISBN API 클라이언트"""

    ISBN_PATH = "/isbn/{isbn}.json"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.base_url = (base_url or settings.openlibrary_base_url).rstrip("/")
        self.timeout = timeout or settings.lookup_timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        self.retry_config = retry_config or RetryConfig(max_attempts=settings.lookup_max_attempts)

    def _get(self, path: str) -> requests.Response:
        """GET (네트워크 오류/429/5xx 재시도)"""
        url = f"{self.base_url}{path}"

        @retry_on_exception(config=self.retry_config)
        def _send():
            return self._session.get(url, timeout=self.timeout)

        return _send()

    def _get_json(self, path: str) -> Dict[str, Any]:
        try:
            response = self._get(path)
        except requests.exceptions.RequestException as e:
            raise ExternalLookupError(
                f"Failed to fetch book data: {type(e).__name__}", detail=str(e)
            )

        if response.status_code == 404:
            raise ExternalLookupError(
                "Book not found in Open Library database", detail=path, status_code=404
            )
        if not response.ok:
            raise ExternalLookupError(
                f"Failed to fetch book data: {response.reason or response.status_code}",
                detail=path,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExternalLookupError("Failed to fetch book data: invalid response", detail=str(e))

    def _fetch_author_name(self, key: str) -> Optional[str]:
        """작가 이름 조회 (실패하면 None, 해당 작가만 건너뜀)"""
        try:
            response = self._get(f"{key}.json")
            if not response.ok:
                logger.info(f"작가 조회 실패 ({response.status_code}): {key}")
                return None
            return response.json().get("name")
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.info(f"작가 조회 오류 (건너뜀): {key} - {e}")
            return None

    def fetch_by_isbn(self, isbn: str) -> BookMetadata:
        """
        ISBN으로 도서 메타데이터 조회

        Args:
            isbn: ISBN-10/13 (하이픈, 공백 허용)

        Returns:
            BookMetadata

        Raises:
            ExternalLookupError: 잘못된 ISBN, 미등록 도서, 제목 누락, 네트워크/서버 오류
        """
        normalized = normalize_lookup_isbn(isbn)
        if len(normalized) not in (10, 13):
            raise ExternalLookupError("Please enter a valid ISBN-10 or ISBN-13", detail=isbn)

        data = self._get_json(self.ISBN_PATH.format(isbn=normalized))

        title = (data.get("title") or "").strip()
        if not title:
            raise ExternalLookupError("Book data incomplete: title not found", detail=normalized)

        authors = []
        for ref in data.get("authors") or []:
            key = ref.get("key") if isinstance(ref, dict) else None
            if not key:
                continue
            name = self._fetch_author_name(key)
            if name:
                authors.append(name)

        isbn13_list = data.get("isbn_13") or []
        isbn10_list = data.get("isbn_10") or []
        isbn13 = normalize_lookup_isbn(isbn13_list[0]) if isbn13_list else None
        isbn10 = normalize_lookup_isbn(isbn10_list[0]) if isbn10_list else None
        if not isbn13 and len(normalized) == 13:
            isbn13 = normalized
        if not isbn10 and len(normalized) == 10:
            isbn10 = normalized

        year, month = extract_publication(data.get("publish_date"), data.get("first_publish_date"))

        logger.info(f"Open Library 조회 성공: {normalized} → {title}")
        return BookMetadata(
            title=title,
            authors=authors,
            isbn13=isbn13,
            isbn10=isbn10,
            publication_year=year,
            publication_month=month,
        )
