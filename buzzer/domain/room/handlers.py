# buzzer/domain/room/handlers.py
from __future__ import annotations

from typing import List, Optional

import structlog

from buzzer.domain.common.events import (
    Result,
    snapshot_to_all,
    to_hosts,
    to_player_ids,
    to_players,
)
from buzzer.transport.ws_manager import ConnRole
from buzzer.transport.protocols import (
    OutgoingEvent,
    OutAck,
    OutBuzz,
    OutLock,
    OutQuestionType,
    OutUnlock,
    InBuzz,
    InClearRankings,
    InJoin,
    InLock,
    InQuestionType,
    InUnlock,
)

logger = structlog.get_logger()

# Handlers run to completion under the room lock and never await.
# Every one is total: a command that does not apply returns ([], []).


def _player_id_for(app, cid: str) -> Optional[int]:
    conn = app.state.wsman.get(cid)
    return conn.player_id if conn is not None else None


def handle_join(*, app, cid: str, msg: InJoin) -> Result:
    """
    Join:
    - only a host-classified connection can join (once)
    - create the player locked, promote the connection
    - ack the id to the joiner, tell it the current question mode
    - snapshot to everyone
    """
    repo = app.state.repo
    wsman = app.state.wsman

    conn = wsman.get(cid)
    if conn is None or conn.role is not ConnRole.HOST:
        logger.info("room.join_ignored", cid=cid, reason="not_a_host_connection")
        return [], []

    player = repo.add_player(msg.name)
    wsman.promote_to_player(cid, player.id)
    logger.info("room.player_joined", cid=cid, player_id=player.id, name=player.name)

    to_sender: List[OutgoingEvent] = [
        OutAck(id=player.id),
        OutQuestionType(mode=repo.question_mode),
    ]
    return to_sender, [snapshot_to_all(repo)]


def handle_buzz(*, app, cid: str, msg: InBuzz) -> Result:
    repo = app.state.repo

    player_id = _player_id_for(app, cid)
    if player_id is None or repo.get_player(player_id) is None:
        logger.info("room.buzz_ignored", cid=cid, reason="no_player")
        return [], []

    first = repo.record_buzz(player_id, msg.answer)
    to_room = []
    if first:
        p = repo.get_player(player_id)
        logger.info("room.buzz", player_id=player_id, rank=p.rank, answer=p.answer)
        to_room.append(to_hosts(OutBuzz(id=player_id, answer=msg.answer)))
    else:
        logger.debug("room.buzz_repeat", player_id=player_id)
    to_room.append(snapshot_to_all(repo))
    return [], to_room


def handle_lock(*, app, cid: str, msg: InLock) -> Result:
    repo = app.state.repo
    affected = repo.set_locked(msg.ids, True)
    logger.info("room.lock", by=cid, requested=msg.ids, affected=affected)
    return [], [to_player_ids(affected, OutLock()), snapshot_to_all(repo)]


def handle_unlock(*, app, cid: str, msg: InUnlock) -> Result:
    repo = app.state.repo
    affected = repo.set_locked(msg.ids, False)
    logger.info("room.unlock", by=cid, requested=msg.ids, affected=affected, buzz_order=repo.buzz_order)
    return [], [to_player_ids(affected, OutUnlock()), snapshot_to_all(repo)]


def handle_question_type(*, app, cid: str, msg: InQuestionType) -> Result:
    repo = app.state.repo
    repo.set_question_mode(msg.mode)
    logger.info("room.question_mode", by=cid, kind=msg.mode.kind, choice_count=msg.mode.choice_count)
    return [], [to_players(OutQuestionType(mode=msg.mode)), snapshot_to_all(repo)]


def handle_clear_rankings(*, app, cid: str, msg: InClearRankings) -> Result:
    repo = app.state.repo
    repo.clear_rankings()
    logger.info("room.rankings_cleared", by=cid)
    return [], [snapshot_to_all(repo)]


def handle_connect(*, app, cid: str) -> Result:
    """New connection: it is already registered as a host; resync everyone."""
    return [], [snapshot_to_all(app.state.repo)]


def handle_disconnect(*, app, cid: str) -> Result:
    """
    Called by transport when a websocket closes or a send to it fails.
    Idempotent: an unknown cid produces nothing.
    """
    repo = app.state.repo
    wsman = app.state.wsman

    conn = wsman.remove(cid)
    if conn is None:
        return [], []

    if conn.player_id is not None:
        removed = repo.remove_player(conn.player_id)
        logger.info(
            "room.player_left",
            cid=cid,
            player_id=conn.player_id,
            found=removed is not None,
            next_id=repo.next_id,
        )
    else:
        logger.info("room.host_left", cid=cid)

    return [], [snapshot_to_all(repo)]
