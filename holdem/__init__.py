"""Single-hand Texas Hold'em round engine used by the table host."""

from .action import Action, ActionRequest, ActionResult
from .cards import Card, Deck, RANKS, SUITS, build_deck, deal
from .evaluator import PlayerCards, describe_rank, determine_winners, evaluate_best
from .models import (
    ActionType,
    BettingRound,
    Blinds,
    HandWinners,
    Player,
    PlayerStatus,
    RoundEvent,
    RoundEventType,
    RoundState,
    TableConfig,
)
from .round import BlindPostingError, Round, RoundStateError

__all__ = [
    "Action",
    "ActionRequest",
    "ActionResult",
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "PlayerCards",
    "describe_rank",
    "determine_winners",
    "evaluate_best",
    "ActionType",
    "BettingRound",
    "Blinds",
    "HandWinners",
    "Player",
    "PlayerStatus",
    "RoundEvent",
    "RoundEventType",
    "RoundState",
    "TableConfig",
    "BlindPostingError",
    "Round",
    "RoundStateError",
]
