import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

BACKEND_DIR = Path(__file__).resolve().parents[2]

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./underwriting.db")

# Question bank documents seeded into the assessments table at startup
QUESTION_BANK_PATH = os.getenv("QUESTION_BANK_PATH", str(BACKEND_DIR / "data" / "question_bank.json"))
SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "true").lower() == "true"

# Reported in every response "meta" block
BANK_VERSION = os.getenv("BANK_VERSION", "0.0")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()  # text | json

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# Session positions idle longer than this are dropped; 0 keeps them forever
POSITION_TTL_SECONDS = float(os.getenv("POSITION_TTL_SECONDS", "3600")) or None
