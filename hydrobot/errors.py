from __future__ import annotations

from enum import Enum


class HydrationError(Exception):
    """Базовая ошибка трекера воды. Текст сообщения можно показывать пользователю."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(HydrationError):
    pass


class NotEligibleReason(str, Enum):
    NO_PROFILE = "no_profile"
    INVALID_INDEX = "invalid_index"
    ALREADY_COMPLETED = "already_completed"
    OUT_OF_ORDER = "out_of_order"
    TOO_EARLY = "too_early"
    WINDOW_EXPIRED = "window_expired"


class NotEligible(HydrationError):
    def __init__(self, reason: NotEligibleReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class PersistenceError(HydrationError):
    pass
