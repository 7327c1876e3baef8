"""Token pricing for chargeable platform actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping


WELCOME_BONUS = 50
TOKEN_EXPIRY_MONTHS = 6


class InsufficientTokens(Exception):
    def __init__(self, user_id: str, required: int, available: int):
        super().__init__(f"Insufficient tokens. Need {required}, have {available}")
        self.user_id = user_id
        self.required = required
        self.available = available


@dataclass(frozen=True)
class TokenAction:
    key: str
    cost: int
    description: str


_SCOUT_ACTIONS: Dict[str, TokenAction] = {
    action.key: action
    for action in (
        TokenAction("view_profile", 2, "Viewed player profile"),
        TokenAction("shortlist", 1, "Added player to shortlist"),
        TokenAction("video_analysis", 8, "Analyzed player video"),
        TokenAction("watch_video", 1, "Watched player video"),
        TokenAction("contact_request", 2, "Requested player contact"),
    )
}

_TEAM_ACTIONS: Dict[str, TokenAction] = {
    action.key: action
    for action in (
        TokenAction("video_analysis", 8, "Analyzed player video"),
        TokenAction("scouting_messaging", 3, "Sent scouting message"),
        TokenAction("transfer_report", 5, "Generated transfer report"),
        TokenAction("federation_letter_request", 10, "Requested federation letter"),
        TokenAction("embassy_notification", 4, "Notified embassy of invitation"),
    )
}


def costs_for_role(role: str) -> Mapping[str, TokenAction]:
    """Scouts have their own price list; every other role uses the team list."""

    if role.strip().lower() == "scout":
        return _SCOUT_ACTIONS
    return _TEAM_ACTIONS


def get_action(role: str, action: str) -> TokenAction:
    actions = costs_for_role(role)
    if action not in actions:
        raise KeyError(f"Invalid action {action!r} for role {role!r}")
    return actions[action]
