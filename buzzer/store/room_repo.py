# buzzer/store/room_repo.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from buzzer.store.models import BUZZ_SENTINEL, PlayerStore, QuestionModeStore


class RoomRepo:
    """
    In-memory store for the single room.
    - roster: player id -> PlayerStore
    - buzz order: list of player ids, first buzz first
    - question mode
    Store-only: no sockets, no protocol. Callers serialize access.
    """

    def __init__(self) -> None:
        self._players: Dict[int, PlayerStore] = {}
        self._buzz_order: List[int] = []
        self._mode = QuestionModeStore()
        self._next_id = 0

    # ----------------------------
    # Roster
    # ----------------------------
    @property
    def next_id(self) -> int:
        return self._next_id

    def add_player(self, name: str) -> PlayerStore:
        p = PlayerStore(id=self._next_id, name=name, locked=True)
        self._players[p.id] = p
        self._next_id += 1
        return p

    def remove_player(self, player_id: int) -> Optional[PlayerStore]:
        p = self._players.pop(player_id, None)
        if p is None:
            return None

        if player_id in self._buzz_order:
            self._buzz_order.remove(player_id)
            self._renumber()

        if not self._players:
            # ids are only recycled once nobody holds one
            self._next_id = 0
        elif self.all_unlocked():
            self.clear_rankings()
        return p

    def get_player(self, player_id: int) -> Optional[PlayerStore]:
        return self._players.get(player_id)

    def list_players(self) -> List[PlayerStore]:
        # stable order: join order == id order
        return [self._players[k] for k in sorted(self._players)]

    def all_unlocked(self) -> bool:
        return bool(self._players) and all(not p.locked for p in self._players.values())

    # ----------------------------
    # Buzzing / locking
    # ----------------------------
    @property
    def buzz_order(self) -> List[int]:
        return list(self._buzz_order)

    def record_buzz(self, player_id: int, answer: Optional[str]) -> bool:
        """
        First-write-wins. Returns True when the buzz was appended to the order.
        The player ends up locked either way.
        """
        p = self._players.get(player_id)
        if p is None:
            return False

        first = player_id not in self._buzz_order
        if first:
            self._buzz_order.append(player_id)
            p.answer = answer if answer else BUZZ_SENTINEL
            p.rank = len(self._buzz_order)
        p.locked = True
        return first

    def set_locked(self, ids: Iterable[int], locked: bool) -> List[int]:
        """
        Apply a lock flag to every roster id in `ids`; unknown ids are skipped.
        Returns the affected ids in request order, without duplicates.
        """
        affected: List[int] = []
        for pid in ids:
            p = self._players.get(pid)
            if p is None or pid in affected:
                continue
            p.locked = locked
            affected.append(pid)

        if not locked and self.all_unlocked():
            self.clear_rankings()
        return affected

    def clear_rankings(self) -> None:
        self._buzz_order.clear()
        for p in self._players.values():
            p.answer = None
            p.rank = None

    def _renumber(self) -> None:
        for pos, pid in enumerate(self._buzz_order, start=1):
            self._players[pid].rank = pos

    # ----------------------------
    # Question mode
    # ----------------------------
    @property
    def question_mode(self) -> QuestionModeStore:
        return self._mode

    def set_question_mode(self, mode: QuestionModeStore) -> None:
        self._mode = mode

    # ----------------------------
    # Snapshot
    # ----------------------------
    def snapshot(self) -> Dict[str, Any]:
        mode: Dict[str, Any] = {"type": self._mode.kind}
        if self._mode.choice_count is not None:
            mode["choiceCount"] = self._mode.choice_count
        return {
            "players": [p.model_dump(exclude_none=True) for p in self.list_players()],
            "buzzOrder": list(self._buzz_order),
            "questionMode": mode,
        }
