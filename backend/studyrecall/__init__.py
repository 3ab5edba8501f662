from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyrecall.config import settings
from studyrecall.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="StudyRecall Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from studyrecall.routers import flashcards, health

    application.include_router(health.router)
    application.include_router(
        flashcards.router, prefix="/flashcards", tags=["flashcards"]
    )

    return application


app = create_app()
