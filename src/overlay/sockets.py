"""
오버레이 실시간 채널 (Socket.IO).

- 접속 시 state:init 으로 현재 씬 전체 전송 (그 클라이언트에게만).
- item:preview 는 저장 없이 보낸 사람 제외 나머지에게 중계.
- item:add / item:update / item:remove / items:clear 는 메모리에 반영 후 보낸 사람 포함 전원에게 방송.
- 없는 id 업데이트 등은 조용히 무시. ack 를 요청한 클라이언트만 {"ok": False, ...} 를 받음.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from src.scene import SceneState

if TYPE_CHECKING:
    from socketio import AsyncServer

logger = logging.getLogger(__name__)

# client -> server
EV_PREVIEW = "item:preview"
EV_ADD = "item:add"
EV_UPDATE = "item:update"
EV_REMOVE = "item:remove"
EV_CLEAR = "items:clear"
# server -> client
EV_INIT = "state:init"
EV_ADDED = "item:added"
EV_UPDATED = "item:updated"
EV_REMOVED = "item:removed"
EV_CLEARED = "items:cleared"


def _ack(ok: bool, error: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"ok": ok}
    if error:
        body["error"] = error
    body.update(extra)
    return body


class SceneBroadcaster:
    """SceneState 와 AsyncServer 를 묶어 이벤트 핸들러 등록 및 방송 담당."""

    def __init__(self, sio: AsyncServer, state: SceneState):
        self.sio = sio
        self.state = state
        self.peers: set[str] = set()

    def register(self) -> None:
        """AsyncServer 에 핸들러 등록."""
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(EV_PREVIEW, self.on_preview)
        self.sio.on(EV_ADD, self.on_add)
        self.sio.on(EV_UPDATE, self.on_update)
        self.sio.on(EV_REMOVE, self.on_remove)
        self.sio.on(EV_CLEAR, self.on_clear)

    async def on_connect(self, sid: str, environ: Any = None, auth: Any = None):
        # 인증 없음: 접속한 모든 피어가 같은 읽기/쓰기 권한
        self.peers.add(sid)
        snapshot = self.state.snapshot()
        logger.info("Overlay socket connect: sid=%s peers=%d items=%d", sid, len(self.peers), len(snapshot))
        await self.sio.emit(EV_INIT, snapshot, to=sid)

    async def on_disconnect(self, sid: str, reason: Any = None):
        self.peers.discard(sid)
        logger.info("Overlay socket disconnect: sid=%s peers=%d", sid, len(self.peers))

    async def on_preview(self, sid: str, data: Any = None):
        """드래그 중 위치 중계. 상태 변경 없음, id 존재 여부도 확인하지 않음."""
        if not isinstance(data, dict):
            return _ack(False, "bad_payload")
        payload = {"id": data.get("id"), "x": data.get("x"), "y": data.get("y")}
        await self.sio.emit(EV_PREVIEW, payload, skip_sid=sid)
        return _ack(True)

    async def on_add(self, sid: str, data: Any = None):
        item = self.state.add(data)
        if item is None:
            logger.debug("item:add dropped from sid=%s", sid)
            return _ack(False, "bad_payload")
        await self.sio.emit(EV_ADDED, item)
        return _ack(True, id=item["id"])

    async def on_update(self, sid: str, data: Any = None):
        if not isinstance(data, dict):
            return _ack(False, "bad_payload")
        item_id = data.get("id")
        patch = data.get("patch")
        if not isinstance(item_id, str) or not item_id or not isinstance(patch, dict):
            return _ack(False, "bad_payload")
        merged = self.state.update(item_id, patch)
        if merged is None:
            return _ack(False, "not_found")
        # patch 자리에 병합 결과 전체를 실어 보냄
        await self.sio.emit(EV_UPDATED, {"id": item_id, "patch": merged})
        return _ack(True)

    async def on_remove(self, sid: str, data: Any = None):
        if not isinstance(data, str) or not data:
            return _ack(False, "bad_payload")
        removed = self.state.remove(data)
        # 없던 id 여도 item:removed 는 방송 (받는 쪽 적용이 멱등)
        await self.sio.emit(EV_REMOVED, data)
        return _ack(True) if removed else _ack(False, "not_found")

    async def on_clear(self, sid: str, data: Any = None):
        self.state.clear()
        await self.sio.emit(EV_CLEARED)
        return _ack(True)
