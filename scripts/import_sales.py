"""
판매 기록 일괄 입력 스크립트

"MM-YYYY,ISBN,수량,출판사수익" 형식 텍스트 파일을 읽어 판매 기록으로 저장합니다.
- 형식 오류 줄은 줄 번호와 사유 출력
- ISBN에 해당하는 도서가 없는 줄은 제외 후 목록 출력
- 인세는 도서 기본 인세율로 계산

사용법:
    python scripts/import_sales.py sales_2026_01.csv --dry-run
    python scripts/import_sales.py sales_2026_01.csv --db ledger_test.db
"""
import sys
import io
import logging
from pathlib import Path

# UTF-8 출력 설정
if sys.platform == 'win32':
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv()

from ledger.database import get_engine_for_db, init_db
from ledger.services.books import load_book_lookup
from ledger.services.bulk_import import parse_bulk_text, match_parsed_rows
from ledger.services.sales import save_pending_sales
from ledger.utils.formatters import format_currency

logger = logging.getLogger(__name__)


def import_sales(text: str, db: str = None, dry_run: bool = False) -> dict:
    """
    텍스트 파싱 → 도서 매칭 → 저장

    Returns:
        통계 딕셔너리 (valid, invalid, unmatched, pending, saved, failed)
    """
    engine = get_engine_for_db(db)
    init_db(bind=engine)

    parsed = parse_bulk_text(text)
    for bad in parsed.invalid:
        print(f"  ❌ Line {bad.line}: {bad.reason}  |  {bad.raw}")

    pending, unmatched = match_parsed_rows(parsed.valid, load_book_lookup(engine))
    for miss in unmatched:
        print(f"  ⚠️  도서 없음: {miss.message}")

    stats = {
        "valid": len(parsed.valid),
        "invalid": len(parsed.invalid),
        "unmatched": len(unmatched),
        "pending": len(pending),
        "saved": 0,
        "failed": 0,
    }

    total_royalty = sum((p.author_royalty for p in pending), start=0)
    print(f"\n저장 대기 {len(pending)}건, 인세 합계 {format_currency(total_royalty)}")

    if dry_run:
        print("(dry-run: 저장하지 않음)")
        return stats

    result = save_pending_sales(engine, pending)
    stats["saved"] = result.saved_count
    stats["failed"] = result.failed_count
    print(result.message)
    return stats


def main():
    import argparse

    parser = argparse.ArgumentParser(description='판매 기록 일괄 입력')
    parser.add_argument('file', type=str, help='입력 파일 (한 줄에 MM-YYYY,ISBN,수량,출판사수익)')
    parser.add_argument('--dry-run', action='store_true', help='저장하지 않고 미리보기만')
    parser.add_argument('--db', type=str, help='DB 파일 경로 또는 URL')
    parser.add_argument('--verbose', '-v', action='store_true', help='상세 로그 출력')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    text = Path(args.file).read_text(encoding='utf-8')

    try:
        stats = import_sales(text, db=args.db, dry_run=args.dry_run)
    except Exception as e:
        logger.exception("일괄 입력 실패")
        print(f"❌ 오류 발생: {e}")
        sys.exit(1)

    print()
    print("📊 최종 통계:")
    print(f"   유효 {stats['valid']}줄 / 형식 오류 {stats['invalid']}줄 / 도서 없음 {stats['unmatched']}줄")
    print(f"   저장 {stats['saved']}건 / 실패 {stats['failed']}건")
    if stats['failed']:
        sys.exit(1)


if __name__ == "__main__":
    main()
