from __future__ import annotations

from typing import Optional

from hydrobot.config import settings


# Маппинг language_code на примерные timezone
LANGUAGE_TO_TIMEZONE = {
    "ru": "Europe/Moscow",
    "uk": "Europe/Kyiv",
    "be": "Europe/Minsk",
    "kk": "Asia/Almaty",
    "uz": "Asia/Tashkent",
    "de": "Europe/Berlin",
    "fr": "Europe/Paris",
    "es": "Europe/Madrid",
    "it": "Europe/Rome",
    "pt": "America/Sao_Paulo",
    "pl": "Europe/Warsaw",
    "tr": "Europe/Istanbul",
    "ar": "Asia/Dubai",
    "zh": "Asia/Shanghai",
    "ja": "Asia/Tokyo",
    "ko": "Asia/Seoul",
    "hi": "Asia/Kolkata",
}


def detect_timezone_from_user(language_code: Optional[str] = None) -> str:
    """
    Определяет timezone по language_code пользователя Telegram.
    Для неизвестных языков (в том числе английского) возвращает timezone из настроек.
    """
    if not language_code:
        return settings.timezone

    # Берем первые 2 символа (например, "ru" из "ru-RU")
    lang = language_code.lower().split("-")[0].split("_")[0]
    return LANGUAGE_TO_TIMEZONE.get(lang, settings.timezone)
