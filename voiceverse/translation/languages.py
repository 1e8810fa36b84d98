"""
Language Tables

Languages offered by the translation endpoints and the ElevenLabs voice
each one is synthesised with.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Language:
    """A supported language."""

    code: str
    name: str
    native_name: str
    voice_id: str
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "name": self.name, "nativeName": self.native_name}
        if self.region:
            data["region"] = self.region
        return data


_BASE = [
    ("en", "English", "English", "US"),
    ("es", "Spanish", "Español", "ES"),
    ("fr", "French", "Français", "FR"),
    ("de", "German", "Deutsch", "DE"),
    ("it", "Italian", "Italiano", "IT"),
    ("pt", "Portuguese", "Português", "PT"),
    ("ru", "Russian", "Русский", "RU"),
    ("zh", "Chinese", "中文", "CN"),
    ("ja", "Japanese", "日本語", "JP"),
    ("ko", "Korean", "한국어", "KR"),
    ("ar", "Arabic", "العربية", "SA"),
    ("hi", "Hindi", "हिन्दी", "IN"),
    ("nl", "Dutch", "Nederlands", "NL"),
    ("sv", "Swedish", "Svenska", "SE"),
    ("no", "Norwegian", "Norsk", "NO"),
    ("da", "Danish", "Dansk", "DK"),
    ("fi", "Finnish", "Suomi", "FI"),
    ("pl", "Polish", "Polski", "PL"),
    ("tr", "Turkish", "Türkçe", "TR"),
    ("uk", "Ukrainian", "Українська", "UA"),
]

_EXTENDED = [
    ("th", "Thai", "ไทย", "TH"),
    ("vi", "Vietnamese", "Tiếng Việt", "VN"),
    ("id", "Indonesian", "Bahasa Indonesia", "ID"),
    ("ms", "Malay", "Bahasa Melayu", "MY"),
    ("tl", "Filipino", "Filipino", "PH"),
]

# Text and audio translation rotate through six voices
_ROTATION = [
    "21m00Tcm4TlvDq8ikWAM",
    "pNInz6obpgDQGcFmaJgB",
    "TxGEqnHWrfWFTfGW9XjX",
    "ZQe5CZNOzWyzPSCn5a3c",
    "EXAVITQu4vr4xnSDxMaL",
    "AZnzlk1XvdvUeBnXmlld",
]

DEFAULT_VOICE_IDS = {
    "male": "IKne3meq5aSn9XLyUdCD",
    "female": "EXAVITQu4vr4xnSDxMaL",
    "multilingual": "EXAVITQu4vr4xnSDxMaL",
}

VOICE_ID_REPLACEMENTS = {
    "9BWtsMINqrJLrRacOk9x": "TxGEqnHWrfWFTfGW9XjX",
    "XB0fDUnXU5powFXDhCwa": "TxGEqnHWrfWFTfGW9XjX",
}

SUPPORTED_LANGUAGES: List[Language] = [
    Language(code, name, native, _ROTATION[i % len(_ROTATION)])
    for i, (code, name, native, _region) in enumerate(_BASE)
]

VOICE_TRANSLATE_LANGUAGES: List[Language] = [
    Language(code, name, native, DEFAULT_VOICE_IDS["multilingual"], region)
    for code, name, native, region in _BASE + _EXTENDED
]

_BY_CODE = {lang.code: lang for lang in SUPPORTED_LANGUAGES}
_VOICE_TRANSLATE_BY_CODE = {lang.code: lang for lang in VOICE_TRANSLATE_LANGUAGES}

# Whisper reports full lowercase language names
_NAME_TO_CODE = {lang.name.lower(): lang.code for lang in VOICE_TRANSLATE_LANGUAGES}
_NAME_TO_CODE["tagalog"] = "tl"


def get_language(code: str) -> Optional[Language]:
    return _BY_CODE.get(code)


def get_voice_translate_language(code: str) -> Optional[Language]:
    return _VOICE_TRANSLATE_BY_CODE.get(code)


def language_name(code: str) -> str:
    lang = _VOICE_TRANSLATE_BY_CODE.get(code)
    return lang.name if lang else code


def normalize_language_code(value: Optional[str], default: str = "en") -> str:
    """Map a Whisper language name or an ISO code to a two-letter code."""
    if not value:
        return default
    value = value.strip().lower()
    if value in _VOICE_TRANSLATE_BY_CODE:
        return value
    return _NAME_TO_CODE.get(value, default)


def resolve_voice_id(voice_id: Optional[str], language: Optional[str] = None) -> str:
    """Swap deprecated voice ids and fill in the language default."""
    if voice_id:
        return VOICE_ID_REPLACEMENTS.get(voice_id, voice_id)
    lang = _VOICE_TRANSLATE_BY_CODE.get(language or "")
    return lang.voice_id if lang else DEFAULT_VOICE_IDS["multilingual"]


__all__ = [
    "Language",
    "SUPPORTED_LANGUAGES",
    "VOICE_TRANSLATE_LANGUAGES",
    "DEFAULT_VOICE_IDS",
    "VOICE_ID_REPLACEMENTS",
    "get_language",
    "get_voice_translate_language",
    "language_name",
    "normalize_language_code",
    "resolve_voice_id",
]
