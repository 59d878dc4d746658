# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import os
import asyncio
import logging
import sentry_sdk
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from app.database import engine, Base, get_db
from app.routers import files, quizzes, attempts
from app.services.background_tasks import run_stale_quiz_sweeper
from app.services.openai_service import openai_service
from app.services.quiz_store import count_quizzes_by_status

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Initialize Sentry for error monitoring
sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
        profiles_sample_rate=0.1,  # 10% of sampled transactions for profiling
        environment=os.getenv("ENVIRONMENT", "development"),
        enable_tracing=True,
    )

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - runs on startup and shutdown."""
    sweeper_task = None

    # STARTUP: fail quizzes left in "generating" by a crashed worker
    if os.getenv("ENABLE_STALE_QUIZ_SWEEP", "true").lower() == "true":
        sweeper_task = asyncio.create_task(run_stale_quiz_sweeper())
    else:
        logger.info("Stale quiz sweep disabled via ENABLE_STALE_QUIZ_SWEEP=false")

    yield  # Application runs here

    # SHUTDOWN
    logger.info("Shutting down...")
    if sweeper_task:
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass


# OpenAPI tag metadata for organized documentation
tags_metadata = [
    {
        "name": "files",
        "description": "Study document upload, text extraction, and file management.",
    },
    {
        "name": "quizzes",
        "description": "AI quiz generation from uploaded files, status polling, and quiz retrieval.",
    },
    {
        "name": "attempts",
        "description": "Quiz attempt submission, scoring, and history.",
    },
]

app = FastAPI(
    title="StudyQuiz API",
    description="""
## StudyQuiz

Turn your study documents into practice quizzes.

### Workflow
1. **Upload** PDF, DOCX or TXT files - text is extracted on upload
2. **Generate** a quiz from selected files - generation runs in the background
3. **Poll** the quiz status until it is `completed` or `failed`
4. **Take** the quiz and submit your answers for an instant score

### Quiz Options
| Option | Values |
|--------|--------|
| Type | multiple-choice, fill-blank |
| Difficulty | easy, medium, hard |
| Questions | 1-50 |
    """,
    version=API_VERSION,
    lifespan=lifespan,
    openapi_tags=tags_metadata,
)

# CORS middleware for the web frontend
# SECURITY: Explicitly list allowed origins - no wildcards
ALLOWED_ORIGINS = [
    "http://localhost:3000",  # Frontend dev server
    "http://localhost:5173",  # Vite dev server
]

# Allow additional origins from environment (for deployed frontends)
extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
if extra_origins:
    ALLOWED_ORIGINS.extend([o.strip() for o in extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept"],
)

# Include routers
app.include_router(files.router)  # Uploads & text extraction
app.include_router(quizzes.router)  # Quiz generation & retrieval
app.include_router(attempts.router)  # Attempt scoring & history


@app.get("/")
def root():
    return {
        "message": "StudyQuiz API",
        "version": API_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/api/status")
def service_status(db: Session = Depends(get_db)):
    """Quiz generation backlog and AI provider statistics for monitoring."""
    return {
        "quizzes": count_quizzes_by_status(db),
        "openai": openai_service.get_status(),
    }
