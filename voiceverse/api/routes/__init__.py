"""
API Routes Module

This module provides all REST API endpoints for the platform.
"""

from .health import router as health_router
from .auth_routes import router as auth_router
from .users import router as users_router
from .saved_voices import router as saved_voices_router
from .voice import router as voice_router
from .translation import router as translation_router
from .voice_translate import router as voice_translate_router
from .audio import router as audio_router
from .feed import router as feed_router
from .challenges import router as challenges_router
from .algorand import router as algorand_router
from .subscription import router as subscription_router
from .contact import router as contact_router


__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "saved_voices_router",
    "voice_router",
    "translation_router",
    "voice_translate_router",
    "audio_router",
    "feed_router",
    "challenges_router",
    "algorand_router",
    "subscription_router",
    "contact_router",
]
