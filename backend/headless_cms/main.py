"""FastAPI 애플리케이션 진입점. 미들웨어와 API 라우터를 등록합니다."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from headless_cms.config import settings
from headless_cms.database import Base, engine
import headless_cms.models  # noqa: F401 - 모델 import로 metadata 등록
from headless_cms.routers import auth, collections, entries, templates, webhooks, content_api

app = FastAPI(
    title="Headless CMS",
    description="동적 컬렉션/필드 스키마 기반 헤드리스 CMS 콘텐츠 코어",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(auth.router)
app.include_router(collections.router)
app.include_router(entries.router)
app.include_router(templates.router)
app.include_router(webhooks.router)
app.include_router(content_api.router)


@app.on_event("startup")
def ensure_schema():
    # 누락된 테이블을 자동 생성합니다.
    Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "Headless CMS"}
