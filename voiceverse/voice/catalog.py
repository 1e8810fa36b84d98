"""
Voice Catalog

Static voice data: the celebrity voice catalogue, emotion presets and
the voice effects seeded into the database.
"""

from typing import Any, Dict, List

from .base import VoiceSettings


def _voice(voice_id: str, name: str, gender: str, description: str) -> Dict[str, str]:
    return {"id": voice_id, "name": name, "gender": gender, "description": description}


CELEBRITY_VOICES: Dict[str, Dict[str, str]] = {
    "aria": _voice("TxGEqnHWrfWFTfGW9XjX", "Aria", "female", "Warm and expressive female voice"),
    "rachel": _voice("EXAVITQu4vr4xnSDxMaL", "Rachel", "female", "Clear and professional female voice"),
    "domi": _voice("AZnzlk1XvdvUeBnXmlld", "Domi", "female", "Confident and strong female voice"),
    "bella": _voice("EXAVITQu4vr4xnSDxMaL", "Bella", "female", "Elegant and sophisticated female voice"),
    "antoni": _voice("ErXwobaYiN019PkySvjV", "Antoni", "male", "Warm and friendly male voice"),
    "elli": _voice("MF3mGyEYCl7XYWbV9V6O", "Elli", "female", "Young and energetic female voice"),
    "josh": _voice("TxGEqnHWrfWFTfGW9XjX", "Josh", "male", "Casual and approachable male voice"),
    "arnold": _voice("VR6AewLTigWG4xSOukaG", "Arnold", "male", "Deep and authoritative male voice"),
    "adam": _voice("pNInz6obpgDQGcFmaJgB", "Adam", "male", "Natural and conversational male voice"),
    "sam": _voice("yoZ06aMxZJJ28mfd3POQ", "Sam", "male", "Smooth and professional male voice"),
    "nicole": _voice("piTKgcLEGmPE4e6mEKli", "Nicole", "female", "Soft and gentle female voice"),
    "freya": _voice("jsCqWAovK2LkecY7zXl4", "Freya", "female", "Dynamic and expressive female voice"),
    "fin": _voice("D38z5RcWu1voky8WS1ja", "Fin", "male", "Youthful and energetic male voice"),
    "sarah": _voice("EXAVITQu4vr4xnSDxMaL", "Sarah", "female", "Professional and clear female voice"),
    "charlie": _voice("IKne3meq5aSn9XLyUdCD", "Charlie", "male", "Friendly and approachable male voice"),
    "george": _voice("JBFqnCBsd6RMkjVDRZzb", "George", "male", "Mature and distinguished male voice"),
    "callum": _voice("N2lVS1w4EtoT3dr4eOWO", "Callum", "male", "British accent male voice"),
    "liam": _voice("TX3LPaxmHKxFdv7VOQHJ", "Liam", "male", "Strong and confident male voice"),
    "charlotte": _voice("XB0fDUnXU5powFXDhCwa", "Charlotte", "female", "Elegant British female voice"),
    "matilda": _voice("XrExE9yKIg1WjnnlVkGX", "Matilda", "female", "Young and cheerful female voice"),
    "james": _voice("ZQe5CZNOzWyzPSCn5a3c", "James", "male", "Calm and authoritative male voice"),
    "lily": _voice("pFZP5JQG7iQjIQuC4Bku", "Lily", "female", "Sweet and melodic female voice"),
    "bill": _voice("pqHfZKP75CvOlQylNhV4", "Bill", "male", "Experienced and wise male voice"),
    "brian": _voice("nPczCjzI2devNBz1zQrb", "Brian", "male", "Narrator-style male voice"),
    "daniel": _voice("onwK4e9ZLuTAKqWW03F9", "Daniel", "male", "Deep and resonant male voice"),
    "eric": _voice("cjVigY5qzO86Huf0OWal", "Eric", "male", "Versatile and expressive male voice"),
    "chris": _voice("iP95p4xoKVk53GoZ742B", "Chris", "male", "Casual and relatable male voice"),
    "michael": _voice("flq6f7yk4E4fJM5XTYuZ", "Michael", "male", "Professional and polished male voice"),
    "ethan": _voice("g5CIjZEefAph4nQFvHAz", "Ethan", "male", "Young and dynamic male voice"),
    "gigi": _voice("jBpfuIE2acCO8z3wKNLl", "Gigi", "female", "Playful and bubbly female voice"),
    "grace": _voice("oWAxZDx7w5VEj9dCyTzz", "Grace", "female", "Graceful and refined female voice"),
    "dorothy": _voice("ThT5KcBeYPX3keUQqHPh", "Dorothy", "female", "Classic and timeless female voice"),
    "glinda": _voice("z9fAnlkpzviPz146aGWa", "Glinda", "female", "Magical and enchanting female voice"),
}


# =============================================================================
# Emotion Presets
# =============================================================================


EMOTION_VOICES: Dict[str, Dict[str, Any]] = {
    "happy": {
        "voice_id": "EXAVITQu4vr4xnSDxMaL",
        "name": "Happy Voice",
        "description": "Cheerful and upbeat voice that conveys joy and excitement",
        "popularity": 85,
        "settings": VoiceSettings(0.3, 0.8, 0.7, True),
    },
    "sad": {
        "voice_id": "TxGEqnHWrfWFTfGW9XjX",
        "name": "Sad Voice",
        "description": "Melancholic and somber voice that conveys sadness and emotion",
        "popularity": 78,
        "settings": VoiceSettings(0.7, 0.6, 0.2, False),
    },
    "angry": {
        "voice_id": "pNInz6obpgDQGcFmaJgB",
        "name": "Angry Voice",
        "description": "Intense and forceful voice that conveys anger and frustration",
        "popularity": 80,
        "settings": VoiceSettings(0.4, 0.9, 0.8, True),
    },
    "calm": {
        "voice_id": "ZQe5CZNOzWyzPSCn5a3c",
        "name": "Calm Voice",
        "description": "Peaceful and soothing voice that conveys tranquility and relaxation",
        "popularity": 82,
        "settings": VoiceSettings(0.8, 0.5, 0.1, False),
    },
    "excited": {
        "voice_id": "AZnzlk1XvdvUeBnXmlld",
        "name": "Excited Voice",
        "description": "Energetic and enthusiastic voice that conveys excitement and passion",
        "popularity": 83,
        "settings": VoiceSettings(0.2, 0.9, 0.9, True),
    },
}


def emotion_voice_list() -> List[Dict[str, Any]]:
    """Emotion presets shaped like voice effects."""
    return [
        {
            "id": key,
            "effectId": key,
            "name": preset["name"],
            "category": "emotion",
            "description": preset["description"],
            "popularity": preset["popularity"],
            "isProOnly": False,
            "elevenLabsVoiceId": preset["voice_id"],
            "settings": preset["settings"].to_dict(),
        }
        for key, preset in EMOTION_VOICES.items()
    ]


def merge_settings(base: VoiceSettings, overrides: Dict[str, Any] = None) -> VoiceSettings:
    """Apply caller overrides on top of a preset, clamping to [0, 1]."""
    merged = base.to_dict()
    for key, value in (overrides or {}).items():
        if key not in merged or value is None:
            continue
        if key == "use_speaker_boost":
            merged[key] = bool(value)
        else:
            merged[key] = max(0.0, min(1.0, float(value)))
    return VoiceSettings(**merged)


# =============================================================================
# Seeded Voice Effects
# =============================================================================


def _effect(effect_id, name, category, description, popularity, voice_id, settings):
    return {
        "effect_id": effect_id,
        "name": name,
        "category": category,
        "description": description,
        "popularity": popularity,
        "is_pro_only": False,
        "voice_id": voice_id,
        "settings": settings.to_dict(),
    }


VOICE_EFFECT_SEEDS: List[Dict[str, Any]] = [
    _effect(key, preset["name"], "emotion", preset["description"],
            preset["popularity"], preset["voice_id"], preset["settings"])
    for key, preset in EMOTION_VOICES.items()
] + [
    _effect(
        "celebrity_voice", "Celebrity Voice", "celebrity",
        "Transform your voice to sound like a celebrity using ElevenLabs voices",
        100, "TxGEqnHWrfWFTfGW9XjX", VoiceSettings(0.5, 0.75, 0.5, True),
    ),
    _effect(
        "french", "French Accent", "language",
        "Add a charming French accent to your voice",
        92, "EXAVITQu4vr4xnSDxMaL", VoiceSettings(0.6, 0.7, 0.4, False),
    ),
    _effect(
        "british", "British Accent", "language",
        "Add a sophisticated British accent to your voice",
        91, "ZQe5CZNOzWyzPSCn5a3c", VoiceSettings(0.7, 0.6, 0.3, False),
    ),
    _effect(
        "spanish", "Spanish Accent", "language",
        "Add a warm Spanish accent to your voice",
        90, "pNInz6obpgDQGcFmaJgB", VoiceSettings(0.5, 0.8, 0.5, True),
    ),
    _effect(
        "german", "German Accent", "language",
        "Add a strong German accent to your voice",
        88, "TxGEqnHWrfWFTfGW9XjX", VoiceSettings(0.6, 0.7, 0.4, False),
    ),
    _effect(
        "australian", "Australian Accent", "language",
        "Add a friendly Australian accent to your voice",
        87, "AZnzlk1XvdvUeBnXmlld", VoiceSettings(0.5, 0.8, 0.6, True),
    ),
]


__all__ = [
    "CELEBRITY_VOICES",
    "EMOTION_VOICES",
    "VOICE_EFFECT_SEEDS",
    "emotion_voice_list",
    "merge_settings",
]
