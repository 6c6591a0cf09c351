# servicepro/core/i18n.py
"""Localized field lookup for models that store en/ar/de variants side by side."""
from servicepro.core.config import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES


def normalize_language(language) -> str:
    if not language:
        return DEFAULT_LANGUAGE
    language = language.lower()[:2]
    return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def pick_localized(obj, field: str, language: str):
    """
    English lives in `field`, the others in `field_ar` / `field_de`.
    Falls back to English when the translation is empty.
    """
    language = normalize_language(language)
    if language == "en":
        return getattr(obj, field)
    return getattr(obj, f"{field}_{language}", None) or getattr(obj, field)
