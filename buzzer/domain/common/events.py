# buzzer/domain/common/events.py
from __future__ import annotations

"""
Routing helpers for outgoing events.
Handlers return (to_sender, to_room); every to_room entry says who gets it.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

from buzzer.store.room_repo import RoomRepo
from buzzer.transport.protocols import OutgoingEvent, OutPlayerList

Audience = Literal["all", "hosts", "players", "targets"]


@dataclass
class Routed:
    event: OutgoingEvent
    audience: Audience = "all"
    targets: List[int] = field(default_factory=list)  # player ids, audience == "targets"


# (to_sender, to_room)
Result = Tuple[List[OutgoingEvent], List[Routed]]


def to_all(event: OutgoingEvent) -> Routed:
    return Routed(event=event, audience="all")


def to_hosts(event: OutgoingEvent) -> Routed:
    return Routed(event=event, audience="hosts")


def to_players(event: OutgoingEvent) -> Routed:
    return Routed(event=event, audience="players")


def to_player_ids(ids: List[int], event: OutgoingEvent) -> Routed:
    return Routed(event=event, audience="targets", targets=list(ids))


def build_snapshot(repo: RoomRepo) -> OutPlayerList:
    return OutPlayerList(state=repo.snapshot())


def snapshot_to_all(repo: RoomRepo) -> Routed:
    return to_all(build_snapshot(repo))
