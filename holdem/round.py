from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

from .action import Action, ActionRequest, ActionResult
from .cards import Deck, cards_to_labels
from . import evaluator
from .models import (
    ActionType,
    BettingRound,
    Blinds,
    HandWinners,
    Player,
    RoundEvent,
    RoundEventType,
    RoundState,
)

LOGGER = logging.getLogger("poker_round")

# Round runs one hand: deal, blinds, four streets, showdown, payout. It never
# talks to the network; drivers call start/perform_action/increment and listen
# for RoundEvents.

STREET_ORDER = [BettingRound.PRE_FLOP, BettingRound.FLOP, BettingRound.TURN, BettingRound.RIVER]

RoundListener = Callable[[RoundEvent], None]


class RoundStateError(RuntimeError):
    """Round state broke an invariant the engine relies on."""


class BlindPostingError(RuntimeError):
    """Blind seats could not be resolved to seated players."""


class Round:
    """Holds and manages the state of a single hand."""

    def __init__(
        self,
        players: List[Player],
        current_dealer: int,
        blinds: Blinds,
        *,
        deck: Optional[Deck] = None,
        street_delay: float = 2.0,
        finish_delay: float = 3.0,
    ) -> None:
        self.players = players
        self.current_dealer = current_dealer
        self.blinds = blinds
        self.street_delay = street_delay
        self.finish_delay = finish_delay
        self.round = RoundState(deck=deck if deck is not None else Deck())
        self._listeners: List[RoundListener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._transition_pending = False
        self._finished = False
        self._closed = False

    # Winner determination --------------------------------------------

    @staticmethod
    def determine_winners(players: List[Player], board: List) -> HandWinners:
        active = [player for player in players if player.is_active_in_round]
        if len(active) == 1:
            return HandWinners(ids=[active[0].id], desc="")
        if len(active) > 1:
            player_cards = [
                evaluator.PlayerCards(id=player.id, cards=list(player.pocket) + list(board)) for player in active
            ]
            return evaluator.determine_winners(player_cards)
        raise RoundStateError("No active players left to award the pot")

    # Lifecycle -------------------------------------------------------

    def start(self) -> None:
        if len(self.players) < 2:
            raise RuntimeError("Not enough players to start a round")
        sb_player = self._find_player(self.get_sb())
        bb_player = self._find_player(self.get_bb())
        if sb_player is None or bb_player is None:
            raise BlindPostingError(
                f"Error posting blinds to small blind id: {self.get_sb()} and big blind id: {self.get_bb()}"
            )
        self._require_loop()

        LOGGER.info(
            "Starting round: dealer=%s players=%s blinds=%s/%s",
            self.current_dealer,
            [player.id for player in self.players],
            self.blinds.sb,
            self.blinds.bb,
        )
        self.round.is_active = True
        self._deal()
        self.start_new_betting_round()
        self._post_blinds(sb_player, bb_player)
        if not self._should_continue():
            # Blinds put everyone who could still act all-in.
            self._finish_round()
            return
        self._skip_to_eligible()
        self._state_updated()

    def end(self) -> None:
        if not self.round.is_active:
            LOGGER.debug("Round already ended")
            return
        LOGGER.info("Ending round")
        self.round.is_active = False
        self._emit(RoundEventType.ROUND_ENDED)

    def close(self) -> None:
        """Tear the round down; pending deferred callbacks are cancelled."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()

    async def settle(self) -> None:
        """Wait until no deferred street transition or round end is pending."""
        while self._tasks:
            done, _ = await asyncio.wait(list(self._tasks))
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    raise task.exception()  # type: ignore[misc]

    # Events ----------------------------------------------------------

    def subscribe(self, listener: RoundListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: RoundListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _state_updated(self) -> None:
        self._emit(RoundEventType.STATE_UPDATED)

    def _emit(self, kind: RoundEventType) -> None:
        event = RoundEvent(kind=kind, snapshot=self.snapshot())
        for listener in list(self._listeners):
            listener(event)

    # Accessors -------------------------------------------------------

    def get_current_player(self) -> Player:
        return self.players[self.round.current_player]

    def get_round(self) -> RoundState:
        return self.round

    def get_blinds(self) -> Blinds:
        return self.blinds

    def is_transition_pending(self) -> bool:
        return self._transition_pending

    def is_finished(self) -> bool:
        return self._finished

    def snapshot(self) -> Dict[str, object]:
        state = self.round
        return {
            "betting_round": state.betting_round.value if state.betting_round else None,
            "board": cards_to_labels(state.board),
            "pot": state.pot,
            "highest_bet": state.highest_bet,
            "current_player": state.current_player,
            "stopping_point": state.stopping_point,
            "dealer": self.current_dealer,
            "players_folded": list(state.players_folded),
            "players_all_in": list(state.players_all_in),
            "is_active": state.is_active,
            "winners": {"ids": list(state.winners.ids), "desc": state.winners.desc},
            "players": [
                {
                    "id": player.id,
                    "name": player.name,
                    "chip_count": player.chip_count,
                    "current_bet": player.current_bet,
                    "status": player.status.value,
                    "is_active_in_round": player.is_active_in_round,
                    "pocket": cards_to_labels(player.pocket),
                }
                for player in self.players
            ],
        }

    # Turn sequencing -------------------------------------------------

    def increment(self) -> None:
        """Move the hand forward after the current player's action was applied."""
        self._ensure_accepting()
        self._require_loop()

        if not self._should_continue():
            self._finish_round()
        else:
            seat = self._next_seat(self.round.current_player)
            for _ in range(len(self.players)):
                if seat == self.round.stopping_point:
                    LOGGER.debug("Stopping point %s reached", seat)
                    self._transition_pending = True
                    self._schedule(self.street_delay, self._advance_street)
                    break
                if self._is_eligible(seat):
                    LOGGER.debug("Going to next player %s", seat)
                    self.round.current_player = seat
                    break
                seat = self._next_seat(seat)
            else:
                raise RoundStateError("No eligible seat found while advancing the turn")

        self._state_updated()

    def perform_action(self, request: ActionRequest) -> bool:
        self._ensure_accepting()
        seat = self.round.current_player
        player = self.get_current_player()
        result = Action(player, request, self.round.highest_bet).resolve()
        if not result.ok:
            LOGGER.debug(
                "Rejected action seat=%s action=%s amount=%s reason=%s",
                seat,
                request.action,
                request.amount,
                result.reason,
            )
            return False
        self._apply_result(seat, player, result)
        LOGGER.debug(
            "Applied action seat=%s action=%s committed=%s pot=%s",
            seat,
            request.action,
            result.committed,
            self.round.pot,
        )
        return True

    def _apply_result(self, seat: int, player: Player, result: ActionResult) -> None:
        state = self.round
        player.chip_count -= result.committed
        player.current_bet += result.committed
        if result.status is not None:
            player.status = result.status
        state.pot += result.committed
        state.highest_bet = max(state.highest_bet, result.highest_bet)
        if result.folded and seat not in state.players_folded:
            state.players_folded.append(seat)
            player.is_active_in_round = False
        if result.all_in and seat not in state.players_all_in:
            state.players_all_in.append(seat)
        if result.reopens:
            state.stopping_point = seat

    def _ensure_accepting(self) -> None:
        if not self.round.is_active:
            raise RuntimeError("Round not active")
        if self._finished:
            raise RuntimeError("Round already finished")
        if self._transition_pending:
            raise RuntimeError("Street transition pending")

    def _should_continue(self) -> bool:
        in_play = [seat for seat in range(len(self.players)) if seat not in self.round.players_folded]
        if len(in_play) < 2:
            return False
        can_act = [seat for seat in in_play if seat not in self.round.players_all_in]
        if not can_act:
            return False
        if len(can_act) == 1:
            # A lone player facing an all-in still has to call or fold.
            return self.players[can_act[0]].current_bet < self.round.highest_bet
        return True

    def _is_eligible(self, seat: int) -> bool:
        return seat not in self.round.players_folded and seat not in self.round.players_all_in

    def _next_seat(self, seat: int) -> int:
        return (seat + 1) % len(self.players)

    # Streets ---------------------------------------------------------

    def _advance_street(self) -> None:
        self._transition_pending = False
        self.start_new_betting_round()
        self._state_updated()

    def start_new_betting_round(self) -> None:
        """Open the next street, or finish the hand once the river is done."""
        self._reset_players()
        if not self._increment_betting_round():
            self._finish_round()
            return

        state = self.round
        LOGGER.info("Starting new betting round: %s", state.betting_round.value)
        state.highest_bet = 0
        first_to_bet = self.get_utg() if state.betting_round == BettingRound.PRE_FLOP else self.get_sb()
        state.current_player = first_to_bet
        state.stopping_point = first_to_bet
        if state.betting_round != BettingRound.PRE_FLOP:
            self._draw()

        if state.betting_round != BettingRound.PRE_FLOP and not self._should_continue():
            self._finish_round()
            return
        self._skip_to_eligible()
        LOGGER.debug("Current player is %s", state.current_player)

    def _skip_to_eligible(self) -> None:
        # The stopping point stays on the first-to-act seat even when that seat is skipped.
        start = self.round.current_player
        seat = start
        while not self._is_eligible(seat):
            seat = self._next_seat(seat)
            if seat == start:
                return
        self.round.current_player = seat

    def _increment_betting_round(self) -> bool:
        current = self.round.betting_round
        if current is None:
            self.round.betting_round = BettingRound.PRE_FLOP
            return True
        if current == BettingRound.RIVER:
            return False
        self.round.betting_round = STREET_ORDER[STREET_ORDER.index(current) + 1]
        return True

    def _reset_players(self) -> None:
        for seat, player in enumerate(self.players):
            player.reset_for_street(folded=seat in self.round.players_folded)

    # Cards -----------------------------------------------------------

    def _deal(self) -> None:
        for player in self.players:
            player.pocket = []
        for _ in range(2):
            for player in self.players:
                player.pocket.append(self.round.deck.draw())

    def _draw(self) -> None:
        board = self.round.board
        self.round.deck.draw()  # burn
        if not board:
            for _ in range(3):
                board.append(self.round.deck.draw())
        else:
            board.append(self.round.deck.draw())

    def _run_out_board(self) -> None:
        while len(self.round.board) < 5:
            self._draw()

    # Blinds ----------------------------------------------------------

    def _find_player(self, player_id: int) -> Optional[Player]:
        return next((player for player in self.players if player.id == player_id), None)

    def _post_blinds(self, sb_player: Player, bb_player: Player) -> None:
        for player, amount in ((sb_player, self.blinds.sb), (bb_player, self.blinds.bb)):
            seat = self._seat_of(player)
            request = ActionRequest(action=ActionType.BLIND, amount=amount)
            result = Action(player, request, self.round.highest_bet).resolve()
            self._apply_result(seat, player, result)
        LOGGER.debug("Posted blinds sb=%s bb=%s pot=%s", sb_player.id, bb_player.id, self.round.pot)

    def _seat_of(self, player: Player) -> int:
        for seat, candidate in enumerate(self.players):
            if candidate is player:
                return seat
        raise RoundStateError(f"Player {player.id} is not seated in this round")

    def get_sb(self) -> int:
        return (self.current_dealer + 1) % len(self.players)

    def get_bb(self) -> int:
        return (self.current_dealer + 2) % len(self.players)

    def get_utg(self) -> int:
        return (self.current_dealer + 3) % len(self.players)

    # Showdown --------------------------------------------------------

    def _finish_round(self) -> None:
        self._finished = True
        if sum(1 for player in self.players if player.is_active_in_round) > 1:
            self._run_out_board()
        winners = Round.determine_winners(self.players, self.round.board)
        self.round.winners = winners
        self._payout(winners)
        self._state_updated()
        LOGGER.info(
            "Round finished: board=%s winners=%s desc=%s pot=%s",
            cards_to_labels(self.round.board),
            winners.ids,
            winners.desc,
            self.round.pot,
        )
        self._schedule(self.finish_delay, self.end)

    def _payout(self, winners: HandWinners) -> None:
        if not winners.ids:
            raise RoundStateError("Cannot pay out without winners")
        by_id = {player.id: player for player in self.players}
        unknown = [player_id for player_id in winners.ids if player_id not in by_id]
        if unknown:
            raise RoundStateError(f"Unknown winner ids {unknown}")

        # Odd chips go to the earliest winning seats.
        ordered = sorted((by_id[player_id] for player_id in winners.ids), key=self._seat_of)
        share, remainder = divmod(self.round.pot, len(ordered))
        for idx, player in enumerate(ordered):
            player.chip_count += share + (1 if idx < remainder else 0)

    # Scheduling ------------------------------------------------------

    def _require_loop(self) -> None:
        # start() and increment() may schedule deferred work; fail before touching state.
        try:
            asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RuntimeError("Round must be driven from a running event loop") from exc

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run_later(delay, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_later(self, delay: float, callback: Callable[[], None]) -> None:
        await asyncio.sleep(delay)
        if self._closed:
            return
        callback()
