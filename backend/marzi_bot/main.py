# /marzi_bot/main.py

import os
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marzi_bot.config.settings import settings
from marzi_bot.utils.lifecycle import lifespan
from marzi_bot.routes import conversations, flows, public

app = FastAPI(
    title="Marzi Outreach Bot",
    version="1.0.0",
    description="Conversation engine for the Marzi WhatsApp outreach bot",
    lifespan=lifespan,
    openapi_url=f"/api/{settings.api_version}/openapi.json" if settings.environment != "production" else None,
    docs_url=f"/api/{settings.api_version}/docs" if settings.environment != "production" else None,
    redoc_url=None,
)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- API Routers ---
app.include_router(public.router)
app.include_router(conversations.router, prefix=f"/api/{settings.api_version}")
app.include_router(flows.router, prefix=f"/api/{settings.api_version}")

# --- Main Entry Point for Uvicorn (for local development) ---
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "127.0.0.1")

    uvicorn.run(
        "marzi_bot.main:app",
        host=host,
        port=port,
        reload=settings.environment == "development",
    )
