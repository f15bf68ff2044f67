# buzzer/transport/ws_manager.py
from __future__ import annotations

import contextlib
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from buzzer.domain.common.events import Routed
from buzzer.transport.protocols import OutgoingEvent, encode_outgoing

logger = structlog.get_logger()

# What a failed send on a websocket can raise
SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class ConnRole(str, Enum):
    HOST = "host"
    PLAYER = "player"


@dataclass
class Conn:
    cid: str
    ws: WebSocket
    role: ConnRole = ConnRole.HOST
    player_id: Optional[int] = None


class WSManager:
    """
    In-memory connection registry for the room.
    - cid -> Conn (websocket + role tag)
    Transport-only: no room rules. Callers hold the room lock.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, Conn] = {}

    def add(self, cid: str, ws: WebSocket) -> Conn:
        # every new connection is a host until it joins
        conn = Conn(cid=cid, ws=ws)
        self._conns[cid] = conn
        return conn

    def promote_to_player(self, cid: str, player_id: int) -> bool:
        conn = self._conns.get(cid)
        if conn is None or conn.role is not ConnRole.HOST:
            return False
        conn.role = ConnRole.PLAYER
        conn.player_id = player_id
        return True

    def remove(self, cid: str) -> Optional[Conn]:
        return self._conns.pop(cid, None)

    def get(self, cid: str) -> Optional[Conn]:
        return self._conns.get(cid)

    def hosts(self) -> List[Conn]:
        return [c for c in self._conns.values() if c.role is ConnRole.HOST]

    def players(self) -> Dict[int, Conn]:
        return {c.player_id: c for c in self._conns.values() if c.role is ConnRole.PLAYER and c.player_id is not None}

    def conn_for_player(self, player_id: int) -> Optional[Conn]:
        return self.players().get(player_id)

    def size(self) -> int:
        return len(self._conns)

    def _recipients(self, routed: Routed) -> List[Conn]:
        if routed.audience == "hosts":
            return self.hosts()
        if routed.audience == "players":
            return list(self.players().values())
        if routed.audience == "targets":
            players = self.players()
            return [players[t] for t in routed.targets if t in players]
        return list(self._conns.values())

    async def _send(self, conn: Conn, text: str) -> bool:
        try:
            await conn.ws.send_text(text)
        except SEND_ERRORS as e:
            logger.warning("ws.send_failed", cid=conn.cid, role=conn.role.value, error=repr(e))
            return False
        return True

    async def deliver(
        self,
        sender_cid: Optional[str],
        to_sender: Iterable[OutgoingEvent],
        to_room: Iterable[Routed],
    ) -> List[str]:
        """
        Send to_sender events to the sender, then each routed event to its audience,
        in order. Returns the cids whose send failed; those sockets get no further
        sends from this call and are closed best-effort. Removal is up to the caller.
        """
        dead: List[str] = []

        sender = self._conns.get(sender_cid) if sender_cid else None
        if sender is not None:
            for e in to_sender:
                if not await self._send(sender, encode_outgoing(e)):
                    dead.append(sender.cid)
                    break

        for routed in to_room:
            text = encode_outgoing(routed.event)
            for conn in self._recipients(routed):
                if conn.cid in dead:
                    continue
                if not await self._send(conn, text):
                    dead.append(conn.cid)

        for cid in dead:
            conn = self._conns.get(cid)
            if conn is not None:
                with contextlib.suppress(*SEND_ERRORS):
                    await conn.ws.close()
        return dead

    async def close_all(self, code: int = 1001) -> None:
        for conn in list(self._conns.values()):
            with contextlib.suppress(*SEND_ERRORS):
                await conn.ws.close(code=code)
        self._conns.clear()
