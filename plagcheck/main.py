from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plagcheck.config import FRONTEND_URL
from plagcheck.logger import logger
from plagcheck.routers.plagiarism import router as plagiarism_router
from plagcheck.services.plagiarism_service import build_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Built inside the running loop so the engine's semaphores belong to it.
    app.state.service = build_service()
    logger.info("Plagiarism service ready")
    yield


app = FastAPI(title="plagcheck", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

app.include_router(plagiarism_router)
