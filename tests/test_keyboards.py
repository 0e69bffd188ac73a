from __future__ import annotations

from datetime import date, timedelta

from hydrobot.bot.keyboards.common import history_keyboard
from hydrobot.models import HistoryEntry
from hydrobot.services.history import HISTORY_PAGE_SIZE


def make_entries(days: int) -> list[HistoryEntry]:
    today = date(2026, 3, 2)
    return [
        HistoryEntry(date=(today - timedelta(days=offset)).isoformat(), goal_ml=2450, intake_ml=1224, completion_percentage=49.96)
        for offset in range(days)
    ]


def buttons(builder) -> list:
    return [button for row in builder.as_markup().inline_keyboard for button in row]


def test_history_keyboard_fits_telegram_limit():
    entries = make_entries(112)
    first = buttons(history_keyboard(entries))
    assert len(first) <= 100
    day_buttons = [button for button in first if button.callback_data.startswith("history:")]
    assert len(day_buttons) == HISTORY_PAGE_SIZE
    assert day_buttons[0].callback_data == "history:2026-03-02"
    assert [button.callback_data for button in first if button.callback_data.startswith("history_page:")] == [
        "history_page:1"
    ]


def test_history_keyboard_navigation_on_middle_and_last_page():
    entries = make_entries(112)
    middle = [button.callback_data for button in buttons(history_keyboard(entries, page=1))]
    assert middle[-2:] == ["history_page:0", "history_page:2"]

    last = [button.callback_data for button in buttons(history_keyboard(entries, page=3))]
    assert last[-1] == "history_page:2"
    assert len([data for data in last if data.startswith("history:")]) == 112 - 3 * HISTORY_PAGE_SIZE


def test_short_history_keyboard_has_no_navigation():
    data = [button.callback_data for button in buttons(history_keyboard(make_entries(5)))]
    assert data == [
        "history:2026-03-02",
        "history:2026-03-01",
        "history:2026-02-28",
        "history:2026-02-27",
        "history:2026-02-26",
    ]
