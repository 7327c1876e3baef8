"""Token pricing and ledger errors."""

from .costs import (
    TOKEN_EXPIRY_MONTHS,
    WELCOME_BONUS,
    InsufficientTokens,
    TokenAction,
    costs_for_role,
    get_action,
)

__all__ = [
    "TOKEN_EXPIRY_MONTHS",
    "WELCOME_BONUS",
    "InsufficientTokens",
    "TokenAction",
    "costs_for_role",
    "get_action",
]
