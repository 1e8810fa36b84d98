"""
Seed Data

Upserts the voice effect catalogue and the launch promo codes. Both
seeds are idempotent and can be re-run against a live database.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from .database.repositories import PromoCodeRepository, VoiceEffectRepository
from .voice.catalog import VOICE_EFFECT_SEEDS


logger = logging.getLogger(__name__)


def promo_code_seeds(now: datetime = None) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    return [
        {
            "code": "WELCOME20",
            "description": "20% off your first subscription",
            "discount_percent": 20,
            "max_redemptions": 1000,
            "valid_until": now + timedelta(days=365),
            "is_active": True,
        },
        {
            "code": "SUMMER2023",
            "description": "15% off summer special",
            "discount_percent": 15,
            "max_redemptions": 500,
            "valid_until": now + timedelta(days=91),
            "is_active": True,
        },
        {
            "code": "VOICEPRO10",
            "description": "$10 off Pro subscription",
            "discount_amount": 10,
            "currency": "USD",
            "max_redemptions": None,
            "valid_until": None,
            "is_active": True,
        },
    ]


async def seed_voice_effects(session: AsyncSession) -> int:
    """Upsert every catalogue effect by ``effect_id``."""
    repo = VoiceEffectRepository(session)
    for seed in VOICE_EFFECT_SEEDS:
        fields = dict(seed)
        effect_id = fields.pop("effect_id")
        await repo.upsert(effect_id, **fields)
        logger.info(f"Seeded voice effect {effect_id}")
    return len(VOICE_EFFECT_SEEDS)


async def seed_promo_codes(session: AsyncSession) -> int:
    """Upsert the launch promo codes by ``code``."""
    repo = PromoCodeRepository(session)
    seeds = promo_code_seeds()
    for seed in seeds:
        fields = dict(seed)
        code = fields.pop("code")
        await repo.upsert(code, **fields)
        logger.info(f"Seeded promo code {code}")
    return len(seeds)


__all__ = [
    "promo_code_seeds",
    "seed_voice_effects",
    "seed_promo_codes",
]
