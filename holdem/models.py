from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .cards import Card, Deck


class BettingRound(str, Enum):
    PRE_FLOP = "PRE_FLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"


class ActionType(str, Enum):
    FOLD = "FOLD"
    CHECK = "CHECK"
    CALL = "CALL"
    RAISE = "RAISE"
    ALL_IN = "ALL_IN"
    BLIND = "BLIND"


class PlayerStatus(str, Enum):
    DEFAULT = "DEFAULT"
    FOLDED = "FOLDED"
    CHECKED = "CHECKED"
    CALLED = "CALLED"
    RAISED = "RAISED"
    ALL_IN = "ALL_IN"
    BLIND = "BLIND"


class RoundEventType(str, Enum):
    STATE_UPDATED = "STATE_UPDATED"
    ROUND_ENDED = "ROUND_ENDED"


@dataclass
class Blinds:
    sb: int
    bb: int


@dataclass
class TableConfig:
    seats: int = 6
    starting_stack: int = 10_000
    sb: int = 50
    bb: int = 100
    street_delay_ms: int = 2_000
    finish_delay_ms: int = 3_000


@dataclass(eq=False)
class Player:
    # Seat number doubles as the id: blinds and payouts resolve players by it.
    id: int
    name: str = ""
    chip_count: int = 0
    pocket: List["Card"] = field(default_factory=list)
    status: PlayerStatus = PlayerStatus.DEFAULT
    current_bet: int = 0
    is_active_in_round: bool = True

    def reset_for_street(self, folded: bool = False) -> None:
        self.status = PlayerStatus.DEFAULT
        self.current_bet = 0
        self.is_active_in_round = not folded


@dataclass
class HandWinners:
    ids: List[int] = field(default_factory=list)
    desc: str = ""


@dataclass
class RoundState:
    # Everything a single hand mutates. Owned by one Round instance.
    deck: "Deck"
    board: List["Card"] = field(default_factory=list)
    pot: int = 0
    highest_bet: int = 0
    current_player: int = -1
    stopping_point: int = -1
    betting_round: Optional[BettingRound] = None
    players_folded: List[int] = field(default_factory=list)
    players_all_in: List[int] = field(default_factory=list)
    is_active: bool = False
    winners: HandWinners = field(default_factory=HandWinners)


@dataclass
class RoundEvent:
    kind: RoundEventType
    snapshot: Dict[str, object] = field(default_factory=dict)
