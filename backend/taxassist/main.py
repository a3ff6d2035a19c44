# taxassist/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taxassist.config import settings
from taxassist.core.db import init_db, close_db
from taxassist.core.middleware import SessionGateMiddleware, setup_exception_handlers

from taxassist.api.v1.routers import auth, conversations, summarize, user

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# Page-request session gate (API routes authenticate per request)
app.add_middleware(SessionGateMiddleware)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    if not settings.openai_api_key:
        logger.warning("[summarizer] OPENAI_API_KEY not set: summaries will use the fallback text")
    if not settings.elevenlabs_agent_id:
        logger.warning("[voice] ELEVENLABS_AGENT_ID not set: clients cannot start calls")
    await init_db()


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()


# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(conversations.router, prefix="/api/v1")
app.include_router(summarize.router, prefix="/api/v1")
app.include_router(user.router, prefix="/api/v1")


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/")
def index():
    """Landing page; only reachable with a valid session (see SessionGateMiddleware)."""
    return {"app": settings.APP_NAME, "voiceAgentId": settings.elevenlabs_agent_id}
