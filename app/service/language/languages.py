from typing import Any

import app.config.config as configs

SUPPORTED_LANGUAGES: dict[str, dict[str, Any]] = {
    "en": {"name": "English", "native_name": "English", "code": "en", "direction": "ltr", "enabled": True, "fallback": None},
    "hi": {"name": "Hindi", "native_name": "हिन्दी", "code": "hi", "direction": "ltr", "enabled": True, "fallback": "en"},
    "ta": {"name": "Tamil", "native_name": "தமிழ்", "code": "ta", "direction": "ltr", "enabled": True, "fallback": "en"},
    "te": {"name": "Telugu", "native_name": "తెలుగు", "code": "te", "direction": "ltr", "enabled": True, "fallback": "en"},
    "kn": {"name": "Kannada", "native_name": "ಕನ್ನಡ", "code": "kn", "direction": "ltr", "enabled": True, "fallback": "en"},
    "gu": {"name": "Gujarati", "native_name": "ગુજરાતી", "code": "gu", "direction": "ltr", "enabled": True, "fallback": "en"},
    "mr": {"name": "Marathi", "native_name": "मराठी", "code": "mr", "direction": "ltr", "enabled": True, "fallback": "en"},
    "pa": {"name": "Punjabi", "native_name": "ਪੰਜਾਬੀ", "code": "pa", "direction": "ltr", "enabled": True, "fallback": "en"},
    "bn": {"name": "Bengali", "native_name": "বাংলা", "code": "bn", "direction": "ltr", "enabled": True, "fallback": "en"},
    "or": {"name": "Odia", "native_name": "ଓଡ଼ିଆ", "code": "or", "direction": "ltr", "enabled": True, "fallback": "en"},
}

# State -> preferred languages, most preferred first
REGIONAL_LANGUAGES: dict[str, list[str]] = {
    "Punjab": ["pa", "hi", "en"],
    "Haryana": ["hi", "pa", "en"],
    "Uttar Pradesh": ["hi", "en"],
    "Bihar": ["hi", "en"],
    "West Bengal": ["bn", "hi", "en"],
    "Odisha": ["or", "hi", "en"],
    "Jharkhand": ["hi", "en"],
    "Chhattisgarh": ["hi", "en"],
    "Madhya Pradesh": ["hi", "en"],
    "Rajasthan": ["hi", "en"],
    "Gujarat": ["gu", "hi", "en"],
    "Maharashtra": ["mr", "hi", "en"],
    "Goa": ["mr", "en"],
    "Karnataka": ["kn", "en"],
    "Andhra Pradesh": ["te", "en"],
    "Telangana": ["te", "hi", "en"],
    "Tamil Nadu": ["ta", "en"],
    "Kerala": ["en"],
    "Assam": ["en"],
    "Meghalaya": ["en"],
    "Manipur": ["en"],
    "Mizoram": ["en"],
    "Tripura": ["bn", "en"],
    "Nagaland": ["en"],
    "Arunachal Pradesh": ["en"],
    "Sikkim": ["en"],
    "Himachal Pradesh": ["hi", "en"],
    "Uttarakhand": ["hi", "en"],
    "Jammu and Kashmir": ["hi", "en"],
    "Ladakh": ["hi", "en"],
    "Delhi": ["hi", "en"],
    "Chandigarh": ["hi", "pa", "en"],
    "Puducherry": ["ta", "en"],
}


def _base_code(code: str | None) -> str:
    # "hi-IN" -> "hi"
    return (code or "").strip().lower().split("-")[0]


def is_language_supported(code: str | None) -> bool:
    info = SUPPORTED_LANGUAGES.get(_base_code(code))
    return bool(info and info["enabled"])


def get_language_info(code: str | None) -> dict[str, Any]:
    return SUPPORTED_LANGUAGES.get(_base_code(code)) or SUPPORTED_LANGUAGES[configs.DEFAULT_LANGUAGE]


def get_fallback_language(code: str | None) -> str:
    info = SUPPORTED_LANGUAGES.get(_base_code(code))
    if info is None:
        return configs.DEFAULT_LANGUAGE
    return info["fallback"] or configs.DEFAULT_LANGUAGE


def resolve_language(code: str | None, default: str | None = None) -> str:
    """Supported base code for `code`, else its fallback. Empty input gives `default`."""
    if not code:
        return default or configs.DEFAULT_LANGUAGE
    if is_language_supported(code):
        return _base_code(code)
    return get_fallback_language(code)


def all_enabled_languages() -> dict[str, dict[str, Any]]:
    return {code: info for code, info in SUPPORTED_LANGUAGES.items() if info["enabled"]}


def languages_for_region(state: str) -> list[str]:
    return REGIONAL_LANGUAGES.get(state, [configs.DEFAULT_LANGUAGE])


def default_language_for_region(state: str) -> str:
    return languages_for_region(state)[0]
