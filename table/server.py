from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import websockets
from websockets.asyncio.server import ServerConnection

from holdem.action import ActionRequest
from holdem.models import ActionType, Blinds, Player, RoundEvent, RoundEventType, TableConfig
from holdem.round import Round

LOGGER = logging.getLogger("poker_table")

# TableServer drives Round instances for websocket clients. Seating, dealer
# rotation and transport live here; the Round only knows about one hand.


@dataclass
class ClientSession:
    seat: int
    team: str
    websocket: ServerConnection


class TableServer:
    def __init__(self, config: TableConfig) -> None:
        self.config = config
        self.table_id = "T-1"
        self.players: List[Player] = []
        self.sessions: Dict[int, ClientSession] = {}
        self.dealer = -1
        self.round: Optional[Round] = None
        self.hands_played = 0
        self.lock = asyncio.Lock()
        self._dispatch_tasks: Set[asyncio.Task] = set()

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with websockets.serve(self._handle_connection, host, port):
            LOGGER.info("Table server listening on %s:%s", host, port)
            try:
                await asyncio.Future()
            finally:
                self.stop()

    def stop(self) -> None:
        if self.round is not None:
            self.round.close()
            self.round = None

    # Seating ---------------------------------------------------------

    def seat_player(self, team: str) -> Player:
        name = team.strip()
        if not name:
            raise ValueError("TEAM_REQUIRED")
        for player in self.players:
            if player.name.casefold() == name.casefold():
                return player
        if len(self.players) >= self.config.seats:
            raise RuntimeError("Table is full")
        player = Player(id=len(self.players), name=name, chip_count=self.config.starting_stack)
        self.players.append(player)
        return player

    def can_start_round(self) -> bool:
        return len(self.players) >= 2 and all(player.chip_count > 0 for player in self.players)

    # Connections -----------------------------------------------------

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        team = hello.get("team")
        if not isinstance(team, str):
            await self._send_error(websocket, code="BAD_SCHEMA", msg="team required")
            await websocket.close()
            return

        try:
            async with self.lock:
                player = self.seat_player(team)
        except ValueError as exc:
            await self._send_error(websocket, code=str(exc), msg="Seat claim rejected")
            await websocket.close()
            return
        except RuntimeError:
            await self._send_error(websocket, code="TABLE_FULL", msg="No seats available")
            await websocket.close()
            return

        previous = self.sessions.get(player.id)
        if previous:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
        session = ClientSession(seat=player.id, team=player.name, websocket=websocket)
        self.sessions[player.id] = session
        LOGGER.info("Seat %s claimed by %s (chips=%s)", player.id, player.name, player.chip_count)

        await self._send_json(websocket, "welcome", {
            "table_id": self.table_id,
            "seat": player.id,
            "config": {
                "seats": self.config.seats,
                "starting_stack": self.config.starting_stack,
                "sb": self.config.sb,
                "bb": self.config.bb,
            },
        })
        await self._publish_lobby()
        if self.round is not None:
            await self._send_json(websocket, "state", self._state_payload(self.round.snapshot(), player.id))
        await self._maybe_start_round()

        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message.get("type") == "action":
                    await self._handle_action(session, message)
                else:
                    await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except websockets.ConnectionClosed:
            pass
        finally:
            if self.sessions.get(player.id) is session:
                self.sessions.pop(player.id, None)
        LOGGER.info("Seat %s (%s) disconnected", player.id, player.name)
        await self._publish_lobby()

    async def _handle_action(self, session: ClientSession, message: Dict[str, object]) -> None:
        action_name = message.get("action")
        amount = message.get("amount")

        async with self.lock:
            current = self.round
            if current is None or not current.get_round().is_active:
                await self._send_error(session.websocket, code="NO_ROUND", msg="No hand in progress")
                return
            if current.is_transition_pending() or current.is_finished():
                await self._send_error(session.websocket, code="ROUND_BUSY", msg="Hand is changing street")
                return
            if current.get_current_player().id != session.seat:
                await self._send_error(session.websocket, code="OUT_OF_TURN", msg="Not your turn")
                return

            try:
                action = ActionType(action_name)
            except ValueError:
                await self._send_error(session.websocket, code="INVALID_ACTION", msg="Unknown action")
                return
            if action == ActionType.BLIND:
                await self._send_error(session.websocket, code="INVALID_ACTION", msg="Blinds are posted automatically")
                return
            if action == ActionType.RAISE and not isinstance(amount, int):
                await self._send_error(session.websocket, code="BAD_SCHEMA", msg="amount required for raise")
                return

            request = ActionRequest(action=action, amount=amount if isinstance(amount, int) else 0)
            if not current.perform_action(request):
                LOGGER.warning(
                    "Rejected action seat=%s action=%s amount=%s",
                    session.seat,
                    action.value,
                    amount,
                )
                await self._send_error(session.websocket, code="INVALID_ACTION", msg="Action rejected")
                return
            current.increment()

    # Hand flow -------------------------------------------------------

    async def _maybe_start_round(self) -> None:
        async with self.lock:
            if self.round is not None or not self.can_start_round():
                return
            self.dealer = (self.dealer + 1) % len(self.players)
            current = Round(
                list(self.players),
                self.dealer,
                Blinds(sb=self.config.sb, bb=self.config.bb),
                street_delay=self.config.street_delay_ms / 1000,
                finish_delay=self.config.finish_delay_ms / 1000,
            )
            current.subscribe(self._on_round_event)
            self.round = current
            LOGGER.info("Starting hand %s with dealer seat %s", self.hands_played + 1, self.dealer)
            current.start()

    def _on_round_event(self, event: RoundEvent) -> None:
        task = asyncio.get_running_loop().create_task(self._dispatch(event))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)

    async def _dispatch(self, event: RoundEvent) -> None:
        await self._broadcast_state(event.snapshot)
        if event.kind != RoundEventType.ROUND_ENDED:
            return

        async with self.lock:
            if self.round is not None:
                self.round.close()
            self.round = None
            self.hands_played += 1
        LOGGER.info("Hand %s finished; winners=%s", self.hands_played, event.snapshot["winners"])
        await self._broadcast("round_ended", {"winners": event.snapshot["winners"]})
        if not self.can_start_round():
            LOGGER.info("Waiting for players: seated=%s", len(self.players))
            return
        await self._maybe_start_round()

    def _state_payload(self, snapshot: Dict[str, object], seat: int) -> Dict[str, object]:
        # Only a contested showdown opens hands, and only those still in it.
        showdown = bool(snapshot["winners"]["desc"])  # type: ignore[index]
        players = []
        for entry in snapshot["players"]:  # type: ignore[union-attr]
            entry = dict(entry)
            shown = showdown and entry["is_active_in_round"]
            if not shown and entry["id"] != seat:
                entry["pocket"] = []
            players.append(entry)
        payload = dict(snapshot)
        payload["players"] = players
        payload["you"] = seat
        return payload

    async def _broadcast_state(self, snapshot: Dict[str, object]) -> None:
        targets = list(self.sessions.values())
        await asyncio.gather(
            *(self._send_json(session.websocket, "state", self._state_payload(snapshot, session.seat)) for session in targets),
            return_exceptions=True,
        )

    async def _broadcast(self, msg_type: str, payload: Dict[str, object]) -> None:
        targets = [session.websocket for session in self.sessions.values()]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _publish_lobby(self) -> None:
        await self._broadcast("lobby", self.lobby_state())

    def lobby_state(self) -> Dict[str, object]:
        return {
            "players": [
                {
                    "seat": player.id,
                    "team": player.name,
                    "connected": player.id in self.sessions,
                    "chips": player.chip_count,
                }
                for player in self.players
            ]
        }

    # Wire helpers ----------------------------------------------------

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
