# buzzer/transport/protocols.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, Field, StrictInt

from buzzer.store.models import QuestionModeStore


# =========================
# Incoming (Client -> Server)
#
# Wire form: one text frame per command, "TYPE" or "TYPE <payload>".
# =========================

class InBase(BaseModel):
    type: str


class InJoin(InBase):
    type: Literal["JOIN"] = "JOIN"
    name: str = Field(min_length=1)


class InBuzz(InBase):
    type: Literal["BUZZ"] = "BUZZ"
    answer: Optional[str] = None


class InLock(InBase):
    type: Literal["LOCK"] = "LOCK"
    ids: List[StrictInt]


class InUnlock(InBase):
    type: Literal["UNLOCK"] = "UNLOCK"
    ids: List[StrictInt]


class InQuestionType(InBase):
    type: Literal["QUESTION_TYPE"] = "QUESTION_TYPE"
    mode: QuestionModeStore


class InClearRankings(InBase):
    type: Literal["CLEAR_RANKINGS"] = "CLEAR_RANKINGS"


IncomingMessage = Union[
    InJoin,
    InBuzz,
    InLock,
    InUnlock,
    InQuestionType,
    InClearRankings,
]

# Commands only a host is expected to send
HOST_ONLY = (InLock, InUnlock, InQuestionType, InClearRankings)


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str

    def encode(self) -> str:
        return self.type


class OutAck(OutBase):
    type: Literal["ACK"] = "ACK"
    id: int

    def encode(self) -> str:
        return f"ACK {self.id}"


class OutBuzz(OutBase):
    """Sent to hosts when a player enters the buzz order."""
    type: Literal["BUZZ"] = "BUZZ"
    id: int
    answer: Optional[str] = None

    def encode(self) -> str:
        if self.answer:
            return f"BUZZ {self.id} {self.answer}"
        return f"BUZZ {self.id}"


class OutLock(OutBase):
    type: Literal["LOCK"] = "LOCK"


class OutUnlock(OutBase):
    type: Literal["UNLOCK"] = "UNLOCK"


class OutQuestionType(OutBase):
    type: Literal["QUESTION_TYPE"] = "QUESTION_TYPE"
    mode: QuestionModeStore

    def encode(self) -> str:
        if self.mode.choice_count is not None:
            return f"QUESTION_TYPE {self.mode.kind} {self.mode.choice_count}"
        return f"QUESTION_TYPE {self.mode.kind}"


class OutPlayerList(OutBase):
    """Full room snapshot: players, buzzOrder, questionMode."""
    type: Literal["PLU"] = "PLU"
    state: Dict[str, Any]

    def encode(self) -> str:
        return "PLU " + json.dumps(self.state, separators=(",", ":"))


OutgoingEvent = Union[
    OutAck,
    OutBuzz,
    OutLock,
    OutUnlock,
    OutQuestionType,
    OutPlayerList,
]


def encode_outgoing(event: OutBase) -> str:
    return event.encode()


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "JOIN": InJoin,
    "BUZZ": InBuzz,
    "LOCK": InLock,
    "UNLOCK": InUnlock,
    "QUESTION_TYPE": InQuestionType,
    "CLEAR_RANKINGS": InClearRankings,
}


def _split(text: str) -> Tuple[str, str]:
    t, _, rest = text.partition(" ")
    return t.strip(), rest


def _payload_for(t: str, rest: str) -> Dict[str, Any]:
    """
    Turn the text after the type keyword into a dict for model validation.
    Raises ValueError on wrong arity or a non-JSON id list.
    """
    if t == "JOIN":
        return {"type": t, "name": rest.strip()}

    if t == "BUZZ":
        return {"type": t, "answer": rest.strip() or None}

    if t in ("LOCK", "UNLOCK"):
        if not rest.strip():
            raise ValueError(f"{t} needs a JSON array of ids")
        try:
            ids = json.loads(rest)
        except RecursionError:
            raise ValueError(f"{t} id list is nested too deeply") from None
        return {"type": t, "ids": ids}

    if t == "QUESTION_TYPE":
        parts = rest.split()
        if len(parts) == 1:
            return {"type": t, "mode": {"kind": parts[0]}}
        if len(parts) == 2:
            return {"type": t, "mode": {"kind": parts[0], "choice_count": int(parts[1])}}
        raise ValueError("QUESTION_TYPE takes a mode and an optional choice count")

    if t == "CLEAR_RANKINGS":
        if rest.strip():
            raise ValueError("CLEAR_RANKINGS takes no payload")
        return {"type": t}

    raise ValueError(f"Unknown message type: {t}")


def parse_incoming(text: str, *, name_max_len: Optional[int] = None) -> IncomingMessage:
    """
    Convert one raw text frame -> validated command model.
    Raises ValueError (ValidationError included) if the frame is malformed.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty message")

    t, rest = _split(text)
    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    msg = cls.model_validate(_payload_for(t, rest))
    if isinstance(msg, InJoin) and name_max_len is not None and len(msg.name) > name_max_len:
        raise ValueError(f"Name longer than {name_max_len} characters")
    return msg
