from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/room")
async def room_state(request: Request):
    """
    Current room snapshot plus live connection counts (debug/admin).
    Read-only and await-free, so it sees one consistent state.
    """
    repo = request.app.state.repo
    wsman = request.app.state.wsman

    return {
        "room": repo.snapshot(),
        "next_id": repo.next_id,
        "hosts": len(wsman.hosts()),
        "players": len(wsman.players()),
    }
