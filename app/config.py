"""
Training Engine Config - 훈련 일정/출결 엔진 설정
"""
import os
import sys
from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class TrainingSettings(BaseSettings):
    """훈련 엔진 설정"""

    # Supabase
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")

    # 네트워크 호출 타임아웃 (초) - 재시도 없이 호출자에게 실패 전달
    REQUEST_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=120)

    # "오늘" 계산 기준 시간대
    CLUB_TIMEZONE: str = "Asia/Seoul"

    # 주간 템플릿 기본값
    DEFAULT_START_TIME: str = "09:00"
    DEFAULT_END_TIME: str = "10:30"

    # 다가오는 훈련일 조회 개수
    UPCOMING_DAYS_LIMIT: int = 14

    # 테스트 모드 (인증 우회)
    CLUB_TEST_MODE: bool = False

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> TrainingSettings:
    return TrainingSettings()


def configure_logging(log_name: str = "training") -> None:
    """loguru 설정 (콘솔 + 일별 파일)"""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=get_settings().LOG_LEVEL
    )
    logger.add(
        f"logs/{log_name}_{{time:YYYY-MM-DD}}.log",
        rotation="1 day",
        retention="30 days",
        level="DEBUG"
    )


def now() -> datetime:
    """클럽 시간대 기준 현재 시각"""
    return datetime.now(ZoneInfo(get_settings().CLUB_TIMEZONE))


def today() -> date:
    """
    클럽 시간대 기준 오늘 날짜

    요청당 한 번만 계산해서 하위 호출에 명시적으로 전달합니다.
    """
    return now().date()
