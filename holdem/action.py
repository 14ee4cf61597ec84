from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ActionType, Player, PlayerStatus

# Action resolution is a pure function of (player, request, highest bet). It
# describes the chips and flags that change; the Round applies the result.


@dataclass
class ActionRequest:
    action: ActionType
    # RAISE: total bet to raise to. BLIND: blind size. Ignored otherwise.
    amount: int = 0


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    reason: str = ""
    status: Optional[PlayerStatus] = None
    committed: int = 0
    highest_bet: int = 0
    folded: bool = False
    all_in: bool = False
    reopens: bool = False


def rejected(reason: str, highest_bet: int) -> ActionResult:
    return ActionResult(ok=False, reason=reason, highest_bet=highest_bet)


class Action:
    """Resolves one requested action for one player against the current street."""

    def __init__(self, player: Player, request: ActionRequest, highest_bet: int) -> None:
        self.player = player
        self.request = request
        self.highest_bet = highest_bet

    def resolve(self) -> ActionResult:
        action = self.request.action
        if action == ActionType.FOLD:
            return ActionResult(
                ok=True,
                status=PlayerStatus.FOLDED,
                highest_bet=self.highest_bet,
                folded=True,
            )
        if action == ActionType.CHECK:
            return self._check()
        if action == ActionType.CALL:
            return self._call()
        if action == ActionType.RAISE:
            return self._raise()
        if action == ActionType.ALL_IN:
            return self._all_in()
        if action == ActionType.BLIND:
            return self._blind()
        return rejected(f"Unsupported action {action}", self.highest_bet)

    def _check(self) -> ActionResult:
        if self.highest_bet > self.player.current_bet:
            return rejected("Cannot check when facing a bet", self.highest_bet)
        return ActionResult(ok=True, status=PlayerStatus.CHECKED, highest_bet=self.highest_bet)

    def _call(self) -> ActionResult:
        to_call = self.highest_bet - self.player.current_bet
        if to_call <= 0:
            return rejected("Nothing to call", self.highest_bet)
        if self.player.chip_count <= 0:
            return rejected("No chips left", self.highest_bet)
        pay = min(to_call, self.player.chip_count)
        all_in = pay == self.player.chip_count
        return ActionResult(
            ok=True,
            status=PlayerStatus.ALL_IN if all_in else PlayerStatus.CALLED,
            committed=pay,
            highest_bet=self.highest_bet,
            all_in=all_in,
        )

    def _raise(self) -> ActionResult:
        target = self.request.amount
        if target <= self.highest_bet:
            return rejected("Raise must exceed current bet", self.highest_bet)
        additional = target - self.player.current_bet
        if additional > self.player.chip_count:
            return rejected("Raise exceeds stack", self.highest_bet)
        all_in = additional == self.player.chip_count
        return ActionResult(
            ok=True,
            status=PlayerStatus.ALL_IN if all_in else PlayerStatus.RAISED,
            committed=additional,
            highest_bet=target,
            all_in=all_in,
            reopens=True,
        )

    def _all_in(self) -> ActionResult:
        stack = self.player.chip_count
        if stack <= 0:
            return rejected("No chips left", self.highest_bet)
        total = self.player.current_bet + stack
        return ActionResult(
            ok=True,
            status=PlayerStatus.ALL_IN,
            committed=stack,
            highest_bet=max(total, self.highest_bet),
            all_in=True,
            reopens=total > self.highest_bet,
        )

    def _blind(self) -> ActionResult:
        pay = min(max(self.request.amount, 0), self.player.chip_count)
        all_in = pay > 0 and pay == self.player.chip_count
        return ActionResult(
            ok=True,
            status=PlayerStatus.ALL_IN if all_in else PlayerStatus.BLIND,
            committed=pay,
            highest_bet=max(self.highest_bet, self.player.current_bet + pay),
            all_in=all_in,
        )
