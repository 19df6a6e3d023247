"""
PeakLog 훈련 엔진 운영 CLI

  python main.py --mode serve
  python main.py --mode sweep --club-id <club>
  python main.py --mode migrate
"""
import asyncio
import sys
from loguru import logger

from app.config import configure_logging, today
from app.training.errors import TrainingError


# 로깅 설정
configure_logging("training")


async def run_sweep(club_id: str) -> bool:
    """지난 세션의 탈퇴 회원 기록 정리"""
    from app.training.service import TrainingServices

    services = TrainingServices()
    current_date = today()
    logger.info(f"고아 기록 정리 시작: club={club_id} 기준일={current_date}")

    try:
        result = await services.sweeper.sweep_orphans(club_id, current_date)
    except TrainingError as e:
        logger.error(f"정리 실패 ({e.kind}): {e.message}")
        return False

    print("\n=== 고아 기록 정리 결과 ===")
    print(f"  검사한 세션: {result.sessions_scanned}개")
    print(f"  삭제한 세션: {result.sessions_deleted}개")
    print(f"  삭제한 출석 기록: {result.records_deleted}개")
    print(f"  유지한 세션: {result.sessions_retained}개 (남은 탈퇴 회원 기록 {result.orphaned_records_remaining}개)")
    for failure in result.failures:
        print(f"  실패: {failure.session_id} - {failure.error}")

    return not result.failures


def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="PeakLog 훈련 엔진")
    parser.add_argument(
        "--mode",
        choices=["serve", "sweep", "migrate"],
        default="serve",
        help="실행 모드"
    )
    parser.add_argument(
        "--club-id",
        help="대상 클럽 ID (sweep 모드)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="서버 포트 (serve 모드)"
    )

    args = parser.parse_args()

    if args.mode == "serve":
        import uvicorn

        logger.info(f"서버 시작: 포트 {args.port}")
        uvicorn.run("app.server:app", host="0.0.0.0", port=args.port)

    elif args.mode == "sweep":
        if not args.club_id:
            parser.error("sweep 모드에는 --club-id가 필요합니다")
        if not asyncio.run(run_sweep(args.club_id)):
            sys.exit(1)

    elif args.mode == "migrate":
        from database.run_migration import run_migration

        if not run_migration():
            sys.exit(1)


if __name__ == "__main__":
    main()
