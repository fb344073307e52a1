# ------------------------------
# Pre-existing disease assessment API
# Run with: uvicorn underwriting.main:app --reload  (from backend/)
# ------------------------------
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from underwriting.core import config
from underwriting.core.logging_config import setup_logging
from underwriting.api import questions
from underwriting.api.debug import router as debug_router
from underwriting.routes.answers import router as answers_router
from underwriting.db.session import SessionLocal, init_db
from underwriting.services.question_bank import load_bank_file, seed_bank

setup_logging(config.LOG_LEVEL, config.LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    if config.SEED_ON_STARTUP and os.path.exists(config.QUESTION_BANK_PATH):
        logger.info("Seeding question bank from %s", config.QUESTION_BANK_PATH)
        db = SessionLocal()
        try:
            seed_bank(db, load_bank_file(config.QUESTION_BANK_PATH))
        finally:
            db.close()
    elif config.SEED_ON_STARTUP:
        logger.warning("Question bank file %s not found; starting with the stored bank", config.QUESTION_BANK_PATH)

    yield


app = FastAPI(
    title="PED Assessment API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/")
def root():
    return {"message": "API is running. Go to /docs for Swagger UI."}


app.include_router(questions.router, prefix="/api")
app.include_router(answers_router, prefix="/api")
app.include_router(debug_router)
