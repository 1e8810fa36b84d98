"""
Health API Routes
"""

import time
from datetime import datetime

from fastapi import APIRouter, Depends

from ..dependencies import get_config, get_storage
from ...config import AppConfig
from ...database.base import get_database
from ...storage import LocalStorage


router = APIRouter(tags=["Health"])

STARTED_AT = time.monotonic()


async def database_status() -> str:
    try:
        healthy = await get_database().health_check()
    except RuntimeError:
        return "uninitialized"
    return "connected" if healthy else "error"


@router.get("/", summary="API banner")
async def root(config: AppConfig = Depends(get_config)):
    return {
        "message": "VoiceVerse API is running!",
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": config.version,
        "environment": config.environment,
    }


@router.get("/health", summary="Health check")
@router.get("/api/health", summary="Health check")
async def health(config: AppConfig = Depends(get_config)):
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "timestamp": datetime.utcnow().isoformat(),
        "environment": config.environment,
        "database": await database_status(),
    }


@router.get("/api/health/audio", summary="Upload directory check")
async def audio_health(storage: LocalStorage = Depends(get_storage)):
    directories = storage.directory_status()
    return {
        "status": "ok" if all(d["exists"] for d in directories.values()) else "degraded",
        "uploadDir": str(storage.base_path),
        "directories": directories,
        "timestamp": datetime.utcnow().isoformat(),
    }
