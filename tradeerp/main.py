# tradeerp/main.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager
from arq.connections import create_pool, RedisSettings

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradeerp.core.config import settings
from tradeerp.core.database import engine, get_session
from tradeerp.core.exceptions import (
    BusinessRuleError,
    DomainError,
    IntegrityConflictError,
    NotFoundError,
    ValidationError,
)
from tradeerp import API_PREFIX

# 태스크 모듈 임포트
from tradeerp.core import tasks as core_tasks
from tradeerp.domains.inv import tasks as inv_tasks

from tradeerp.domains.inv.routers import router as inv_router
from tradeerp.domains.sales.routers import router as sales_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    inv_tasks.distribute_warehouse_fee_task,
    inv_tasks.refresh_product_costs_task,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    jobs = [
        {
            'name': 'daily_db_health_check',
            'function': 'tradeerp.core.tasks.health_check_database_task',
            'cron': '0 0 * * *',
            'timeout': 300,
            'keep_result': 600,
        },
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기 이벤트(데이터베이스, ARQ Redis)를 함께 처리합니다.
    """
    logger.info("FastAPI 애플리케이션 시작 중...")
    app.state.redis = None
    try:
        logger.info("ARQ Redis 커넥션 풀을 생성합니다...")
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("ARQ Redis 커넥션 풀 생성 완료.")
    except Exception as e:
        logger.error("애플리케이션 시작 중 오류 발생: %s", e)
        raise

    yield  # 애플리케이션 실행

    logger.info("FastAPI 애플리케이션 종료 중...")
    try:
        if app.state.redis:
            await app.state.redis.close()
            logger.info("ARQ Redis 연결 풀 종료 완료.")
        await engine.dispose()
        logger.info("데이터베이스 연결 풀 종료 완료.")
    except Exception as e:
        logger.error("애플리케이션 종료 중 오류 발생: %s", e)


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 개발용: 모든 출처 허용
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -- 도메인 오류 → HTTP 상태 코드 --
# 하위 클래스가 먼저 오도록 순서를 유지합니다.
_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (IntegrityConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (BusinessRuleError, status.HTTP_400_BAD_REQUEST),
)


def status_code_for(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())


app.include_router(inv_router, prefix=f"{API_PREFIX}/inv", tags=["Inventory Costing (재고 원가 관리)"])
app.include_router(sales_router, prefix=f"{API_PREFIX}/sales", tags=["Sales Ledger (매입/매출 장부)"])


@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    API의 루트 엔드포인트입니다.
    API의 시작점을 알리고 문서 링크를 제공합니다.
    """
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    애플리케이션의 헬스 체크 엔드포인트입니다.
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
