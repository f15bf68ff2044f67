# buzzer/transport/dispatcher.py
from __future__ import annotations

import structlog

from buzzer.transport.protocols import (
    HOST_ONLY,
    parse_incoming,
    InBuzz,
    InClearRankings,
    InJoin,
    InLock,
    InQuestionType,
    InUnlock,
)
from buzzer.transport.ws_manager import ConnRole
from buzzer.domain.common.events import Result
from buzzer.domain.room.handlers import (
    handle_buzz,
    handle_clear_rankings,
    handle_join,
    handle_lock,
    handle_question_type,
    handle_unlock,
)

logger = structlog.get_logger()

_HANDLERS = {
    InJoin: handle_join,
    InBuzz: handle_buzz,
    InLock: handle_lock,
    InUnlock: handle_unlock,
    InQuestionType: handle_question_type,
    InClearRankings: handle_clear_rankings,
}


def dispatch_message(*, app, cid: str, raw: str) -> Result:
    """
    Transport layer calls this, holding the room lock.
    - Parses + validates the raw text frame
    - Applies the host-role policy
    - Routes to the room handler
    Malformed frames are logged and dropped: nothing goes back to the sender.
    """
    settings = app.state.settings
    try:
        msg = parse_incoming(raw, name_max_len=settings.NAME_MAX_LEN)
    except ValueError as e:
        logger.warning("ws.message_dropped", cid=cid, raw=raw[:200], reason=str(e))
        return [], []

    conn = app.state.wsman.get(cid)
    if conn is None:
        logger.info("ws.message_from_unknown_connection", cid=cid, type=msg.type)
        return [], []

    if isinstance(msg, HOST_ONLY) and conn.role is not ConnRole.HOST:
        if settings.ENFORCE_HOST_ROLE:
            logger.warning("dispatch.role_violation_dropped", cid=cid, type=msg.type, player_id=conn.player_id)
            return [], []
        logger.info("dispatch.role_violation_allowed", cid=cid, type=msg.type, player_id=conn.player_id)

    handler = _HANDLERS[type(msg)]
    return handler(app=app, cid=cid, msg=msg)
