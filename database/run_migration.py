"""
Supabase 마이그레이션 도우미

Python 클라이언트는 DDL을 직접 실행할 수 없으므로
테이블 존재 여부를 확인하고, 없으면 Dashboard에서 실행할 SQL을 출력합니다.
"""
from pathlib import Path
from loguru import logger
from postgrest.exceptions import APIError

from database.supabase_client import get_supabase_client

MIGRATION_FILE = Path(__file__).parent / "migrations" / "001_training_engine.sql"

ENGINE_TABLES = [
    "training_schedules",
    "training_cancellations",
    "training_sessions",
    "session_attendance",
    "personal_records",
    "athlete_goals",
    "club_members",
    "training_programs",
    "performance_categories",
]


def find_missing_tables(client) -> list:
    """조회가 실패하는 테이블 목록"""
    missing = []
    for table in ENGINE_TABLES:
        try:
            client.table(table).select("*").limit(1).execute()
        except APIError as e:
            logger.info(f"{table} 테이블 확인 실패: {e.message}")
            missing.append(table)
    return missing


def run_migration() -> bool:
    """마이그레이션 SQL 확인/출력"""
    if not MIGRATION_FILE.exists():
        logger.error(f"마이그레이션 파일을 찾을 수 없습니다: {MIGRATION_FILE}")
        return False

    try:
        client = get_supabase_client()
    except ValueError as e:
        logger.error(str(e))
        return False

    missing = find_missing_tables(client)
    if not missing:
        logger.info("✅ 훈련 엔진 테이블이 모두 존재합니다")
        return True

    logger.info(f"생성이 필요한 테이블: {', '.join(missing)}")

    # Supabase Dashboard에서 실행해야 하는 SQL 출력
    logger.info("=" * 60)
    logger.info("Supabase Dashboard에서 아래 SQL을 실행해주세요:")
    logger.info("=" * 60)
    logger.info("1. https://supabase.com/dashboard 접속")
    logger.info("2. 프로젝트 선택 → SQL Editor")
    logger.info("3. 아래 SQL 복사하여 실행")
    logger.info("=" * 60)
    print("\n" + MIGRATION_FILE.read_text(encoding="utf-8") + "\n")
    logger.info("=" * 60)

    return True


if __name__ == "__main__":
    run_migration()
