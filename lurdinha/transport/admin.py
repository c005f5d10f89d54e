# lurdinha/transport/admin.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from lurdinha.errors import NotFound

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all live rooms (debug/admin).
    """
    repo = request.app.state.repo

    rooms = []
    for code in await repo.list_room_ids():
        try:
            room = await repo.get(code)
        except NotFound:
            # expired between the scan and the read
            continue
        rooms.append(
            {
                "room_code": room.room_id,
                "host_id": room.host_id,
                "status": room.status,
                "current_round": room.current_round,
                "total_rounds": room.settings.total_rounds,
                "players": len(room.players),
                "created_at": room.created_at,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_code}/close")
async def close_room(room_code: str, request: Request):
    """
    Force close a room (debug/admin). Subscribers are told the room is gone.
    """
    repo = request.app.state.repo
    try:
        await repo.delete(room_code)
    except NotFound:
        raise HTTPException(status_code=404, detail="Room not found")

    return {"ok": True, "room_code": room_code}
