"""
PeakLog Training Engine - FastAPI 웹 서버
클럽 훈련 일정 / 출석 / 기록 API

데이터 소스: Supabase (전용)
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from app.config import configure_logging, get_settings
from app.training.errors import StoreError, TrainingError
from app.training.router import router as training_router

# FastAPI 앱
app = FastAPI(
    title="PeakLog Training Engine",
    description="주간 훈련 템플릿 기반 캘린더, 출석, PB/목표 관리",
    version="1.0.0"
)

# Training 라우터 등록
app.include_router(training_router, prefix="/api")


@app.on_event("startup")
async def setup_logging():
    """서버 로그 설정 (콘솔 + logs/server_YYYY-MM-DD.log)"""
    configure_logging("server")
    logger.info("PeakLog Training Engine 시작")


@app.exception_handler(TrainingError)
async def training_error_handler(request: Request, exc: TrainingError):
    """
    엔진 오류 → HTTP 상태 코드

    ValidationError 422 / NotFoundError 404 / ConflictError 409 / StoreError 503
    """
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path} 저장소 오류: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/api/health")
async def health_check():
    """서버 상태"""
    settings = get_settings()
    return {
        "status": "ok",
        "timezone": settings.CLUB_TIMEZONE,
        "test_mode": settings.CLUB_TEST_MODE,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
