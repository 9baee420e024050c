# FILE: main.py
"""
Recall Backend - FastAPI Application
Version: 0.4.0

Answers questions about locally cached notes:
- Keyword retrieval over the note cache (no network needed)
- Generated answers from Gemini, OpenRouter or a local Ollama, with fallback
- Streaming answers over SSE
- Backend diagnostics and telemetry for the settings screen
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from recall import __version__
from recall.config import LOG_LEVEL, load_backend_config
from recall.db import init_db
from recall.corpus.store import DocumentStore
from recall.llm.orchestrator import BackendOrchestrator
from recall.llm.telemetry_router import router as diagnostics_router
from recall.metrics.ledger import TelemetryLedger
from recall.search.engine import AnswerEngine
from recall.search.router import router as search_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Recall",
    version=__version__,
    description="Retrieval-augmented answers over personal notes",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "file://",  # Desktop shell loads the UI from disk
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ====== COMPONENTS ======

store = DocumentStore()
orchestrator = BackendOrchestrator(telemetry=TelemetryLedger())

app.state.store = store
app.state.orchestrator = orchestrator
app.state.answer_engine = AnswerEngine(corpus=store, orchestrator=orchestrator)


# ====== STARTUP ======

@app.on_event("startup")
async def on_startup():
    os.makedirs("data", exist_ok=True)

    print("[startup] Initializing note cache...")
    init_db()
    print(f"[startup] Note cache: {store.count()} document(s)")

    print("[startup] Checking environment variables...")
    for var in ("GEMINI_API_KEY", "OPENROUTER_API_KEY"):
        if os.getenv(var):
            print(f"[startup] {var}: [OK] set")
        else:
            print(f"[startup] {var}: [X] NOT SET")

    print("[startup] Initializing generation backends...")
    await orchestrator.initialize(load_backend_config())
    active = orchestrator.get_current_provider()
    if active:
        print(f"[startup] Active backend: {active} ({orchestrator.get_current_model()})")
    else:
        print("[startup] No generation backend available - local search only")


# ====== ROUTERS ======

app.include_router(search_router)
app.include_router(diagnostics_router)


# ====== PUBLIC ENDPOINTS ======

@app.get("/ping")
def ping():
    """Health check."""
    return {
        "status": "ok",
        "generation_available": orchestrator.is_available(),
        "provider": orchestrator.get_current_provider(),
    }
