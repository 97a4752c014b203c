"""Enumerations exposed to clients for building forms and filters."""
from enum import Enum

from nexus.models import BoardVisibility, CardPriority, CardStatus, Role


def _options(enum_cls: type[Enum]) -> list[dict[str, str]]:
    return [
        {"label": member.value.replace("_", " ").lower(), "value": member.value}
        for member in enum_cls
    ]


def get_meta() -> dict[str, list[dict[str, str]]]:
    return {
        "roles": _options(Role),
        "card_statuses": _options(CardStatus),
        "card_priorities": _options(CardPriority),
        "board_visibilities": _options(BoardVisibility),
    }
