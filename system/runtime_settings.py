import json
import os
from pathlib import Path

from dotenv import load_dotenv

SETTINGS_PATH = Path("verbum_settings.json")

DEFAULTS = {
    "VERBUM_TEXT_MODEL": "gemini-2.5-flash",
    "VERBUM_TTS_MODEL": "gemini-2.5-flash-preview-tts",
    "VERBUM_IMAGE_MODEL": "imagen-4.0-generate-001",
    "VERBUM_TEXT_TEMPERATURE": "0.1",
    "VERBUM_PREFETCH_WINDOW": "1",
    "VERBUM_VOICE": "Puck",
    "VERBUM_CACHE_DIR": ".verbum_cache",
    "VERBUM_VIEWPORT_LINES": "12",
}

API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


def load_settings(path=SETTINGS_PATH):
    settings = dict(DEFAULTS)
    if not path.exists():
        return settings

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return settings

    if not isinstance(raw, dict):
        return settings

    for key in DEFAULTS:
        if key in raw and raw[key] is not None:
            settings[key] = str(raw[key]).strip()
    return settings


def save_settings(settings, path=SETTINGS_PATH):
    payload = {}
    for key, default in DEFAULTS.items():
        payload[key] = str(settings.get(key, default)).strip()
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def apply_settings_to_environ(settings, override=True):
    for key, value in settings.items():
        if override or key not in os.environ:
            os.environ[key] = str(value)


def get_setting(key):
    value = os.environ.get(key, "").strip()
    return value or DEFAULTS[key]


def get_int_setting(key, minimum=None, maximum=None):
    fallback = int(DEFAULTS[key])
    try:
        value = int(get_setting(key))
    except ValueError:
        value = fallback
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def get_float_setting(key):
    try:
        return float(get_setting(key))
    except ValueError:
        return float(DEFAULTS[key])


def get_prefetch_window():
    return get_int_setting("VERBUM_PREFETCH_WINDOW", minimum=1, maximum=3)


def get_cache_dir():
    return Path(get_setting("VERBUM_CACHE_DIR"))


def resolve_api_key(use_dotenv=True):
    if use_dotenv:
        load_dotenv()
    for name in API_KEY_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None
