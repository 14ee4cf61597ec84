from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

from holdem.action import ActionRequest
from holdem.cards import Deck, build_deck, parse_cards
from holdem.models import ActionType, Blinds, Player
from holdem.round import Round


def make_players(count: int, chips: int = 1_000) -> List[Player]:
    return [Player(id=idx, name=f"Player{idx}", chip_count=chips) for idx in range(count)]


def stacked_deck(labels: Iterable[str]) -> Deck:
    """Deck whose top cards are `labels` in order, followed by every other card."""
    top = parse_cards(labels)
    rest = [card for card in build_deck(seed=0) if card not in top]
    return Deck(cards=top + rest)


def create_round(
    *,
    players: Optional[List[Player]] = None,
    seats: int = 4,
    chips: int = 1_000,
    dealer: int = 0,
    sb: int = 1,
    bb: int = 2,
    deck: Optional[Deck] = None,
    seed: int = 42,
) -> Round:
    """Round with zero UI delays so deferred transitions run on the next loop tick."""
    return Round(
        players if players is not None else make_players(seats, chips),
        dealer,
        Blinds(sb=sb, bb=bb),
        deck=deck if deck is not None else Deck(seed=seed),
        street_delay=0,
        finish_delay=0,
    )


def act(rnd: Round, action: ActionType, amount: int = 0) -> None:
    """Apply an action that must succeed, then advance the turn."""
    assert rnd.perform_action(ActionRequest(action=action, amount=amount)), action
    rnd.increment()


def passive_action(rnd: Round) -> ActionType:
    player = rnd.get_current_player()
    if rnd.get_round().highest_bet > player.current_bet:
        return ActionType.CALL
    return ActionType.CHECK


async def play_street(rnd: Round) -> None:
    """Check or call until the current street closes, then let the transition run."""
    while not rnd.is_transition_pending() and not rnd.is_finished():
        act(rnd, passive_action(rnd))
    await rnd.settle()


async def check_down(rnd: Round) -> None:
    """Check or call every decision until the hand ends."""
    while rnd.get_round().is_active and not rnd.is_finished():
        if rnd.is_transition_pending():
            await rnd.settle()
            continue
        act(rnd, passive_action(rnd))
    await rnd.settle()


def start_in_loop(rnd: Round) -> Round:
    """Start `rnd` inside a short-lived event loop, for tests that only inspect the opening state."""

    async def scenario() -> None:
        rnd.start()

    asyncio.run(scenario())
    return rnd
