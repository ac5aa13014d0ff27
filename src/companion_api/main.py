"""
FastAPI application entrypoint for the music companion backend.

Routes:
- POST /signup, POST /login, POST /verifyAccessToken
- POST /addMusic
- POST /addMusicToListeningHistory, GET /getLastListenedMusic
- GET /song-audio-features

CORS is enabled for local development (http://localhost:3000) and can be extended
via environment variables.
"""

from __future__ import annotations

import logging
import os as _os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from companion_api.db import init_db
from companion_api.errors import ApiError
from companion_api.routes_auth import router as auth_router
from companion_api.routes_features import router as features_router
from companion_api.routes_history import router as history_router
from companion_api.routes_music import router as music_router

load_dotenv()

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Auth", "description": "Signup, login and access token verification."},
    {"name": "Music", "description": "Track catalog."},
    {"name": "History", "description": "Per-user last five played tracks."},
    {"name": "Features", "description": "Audio features from the metadata provider."},
    {"name": "Health", "description": "Service health."},
]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="Music Companion Backend API",
    description=(
        "Backend for a music-streaming companion app.\n\n"
        "Authentication: POST /login returns a JWT; send it as `Authorization: Bearer <token>`."
    ),
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

# Credentials=true requires explicit origins (not '*') in browsers.
# Add origins via CORS_ALLOW_ORIGINS or ALLOWED_ORIGINS, comma-separated.
cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

_allow_origins_raw = _os.getenv("CORS_ALLOW_ORIGINS") or _os.getenv("ALLOWED_ORIGINS", "")
cors_origins.extend(o.strip() for o in _allow_origins_raw.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("database_error: path=%s exc=%s", request.url.path, exc.__class__.__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"message": f"Backend database error ({exc.__class__.__name__})."},
    )


app.include_router(auth_router)
app.include_router(music_router)
app.include_router(history_router)
app.include_router(features_router)


@app.get(
    "/",
    summary="Health check",
    description="Simple health check endpoint.",
    tags=["Health"],
)
def health_check():
    """Return basic service health information."""
    return {"health": "100%"}
