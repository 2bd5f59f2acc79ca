"""데이터베이스 초기화 스크립트"""
import sys
import logging
from pathlib import Path

# 프로젝트 루트를 파이썬 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv()

from ledger.database import Base, get_engine_for_db, init_db


def main():
    """DB 테이블 생성"""
    import argparse

    parser = argparse.ArgumentParser(description='도서/판매/인세 DB 초기화')
    parser.add_argument('--db', type=str, help='DB 파일 경로 또는 URL (기본값: DATABASE_URL / 설정값)')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    print("Initializing database...")

    engine = get_engine_for_db(args.db)
    init_db(bind=engine)

    print("Database tables created successfully!")
    print("\nCreated tables:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    main()
