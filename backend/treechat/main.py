"""TreeChat FastAPI application entry point."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from treechat.config import load_chat_config
from treechat.conversations.messages import MessageReconstructor
from treechat.conversations.router import get_node_store
from treechat.conversations.router import router as conversations_router
from treechat.conversations.service import NodeStore
from treechat.conversations.summaries import (
    DEFAULT_SUMMARY_MAX_TOKENS,
    DEFAULT_SUMMARY_MODEL,
    SummaryGenerator,
    get_summary_client,
)
from treechat.db.connection import Database
from treechat.layout.config import DEFAULT_ENGINE
from treechat.layout.router import get_layout_service
from treechat.layout.router import router as layout_router
from treechat.layout.service import LayoutService

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database lifecycle and service wiring."""
    # Load .env from backend/ directory (secrets stay out of shell profile)
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    db = await Database.connect(os.environ.get("TREECHAT_DB_PATH", "treechat.db"))

    # Summaries are optional; without a key nodes keep summary=None
    summary_generator = None
    if os.environ.get("OPENAI_API_KEY"):
        summary_generator = SummaryGenerator(
            get_summary_client(os.environ["OPENAI_API_KEY"]),
            model=os.environ.get("SUMMARY_MODEL", DEFAULT_SUMMARY_MODEL),
            max_tokens=int(
                os.environ.get("SUMMARY_MAX_TOKENS", DEFAULT_SUMMARY_MAX_TOKENS)
            ),
        )

    chat_config = load_chat_config(os.environ.get("TREECHAT_CHAT_CONFIG"))

    # Node store
    store = NodeStore(
        db,
        summary_generator=summary_generator,
        reconstructor=MessageReconstructor(chat_config),
    )
    app.dependency_overrides[get_node_store] = lambda: store

    # Layout service
    layout_service = LayoutService(
        engine=os.environ.get("TREECHAT_LAYOUT_ENGINE", DEFAULT_ENGINE),
    )
    app.dependency_overrides[get_layout_service] = lambda: layout_service

    app.state.db = db
    yield

    await db.close()


app = FastAPI(
    title="TreeChat",
    description="Branching chat conversations laid out as a tree",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conversations_router)
app.include_router(layout_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": VERSION}
