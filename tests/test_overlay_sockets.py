from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from src.overlay.sockets import SceneBroadcaster
from src.scene import SceneState


class _CaptureSio:
    """AsyncServer 대역: 핸들러 등록과 emit 대상/내용만 기록."""

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.connected: list[str] = []
        self.sent: list[tuple[str, str, Any]] = []

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def emit(self, event: str, data: Any = None, to: Optional[str] = None, skip_sid: Optional[str] = None) -> None:
        targets = [to] if to is not None else [s for s in self.connected if s != skip_sid]
        for sid in targets:
            # 실제 서버처럼 emit 시점에 직렬화
            self.sent.append((sid, event, json.loads(json.dumps(data))))

    def received(self, sid: str, event: Optional[str] = None) -> list[Any]:
        return [d for s, e, d in self.sent if s == sid and (event is None or e == event)]


def _setup(*sids: str) -> tuple[_CaptureSio, SceneBroadcaster]:
    sio = _CaptureSio()
    broadcaster = SceneBroadcaster(sio, SceneState())
    broadcaster.register()
    for sid in sids:
        _connect(sio, sid)
    return sio, broadcaster


def _connect(sio: _CaptureSio, sid: str) -> None:
    sio.connected.append(sid)
    asyncio.run(sio.handlers["connect"](sid, {}))


def _fire(sio: _CaptureSio, event: str, sid: str, *args: Any) -> Any:
    return asyncio.run(sio.handlers[event](sid, *args))


def test_register_binds_all_protocol_events() -> None:
    sio, _ = _setup()

    assert set(sio.handlers) == {
        "connect",
        "disconnect",
        "item:preview",
        "item:add",
        "item:update",
        "item:remove",
        "items:clear",
    }


def test_connect_sends_snapshot_only_to_new_peer() -> None:
    sio, _ = _setup("a")
    _fire(sio, "item:add", "a", {"type": "image", "url": "/uploads/a.png"})
    sio.sent.clear()

    _connect(sio, "b")

    assert sio.received("a") == []
    [init] = sio.received("b", "state:init")
    assert len(init) == 1
    assert init[0]["url"] == "/uploads/a.png"


def test_state_init_snapshot_not_affected_by_later_mutations() -> None:
    sio, b = _setup("a")
    _fire(sio, "item:add", "a", {"url": "/uploads/a.png"})
    _connect(sio, "b")
    [init] = sio.received("b", "state:init")
    item_id = init[0]["id"]

    _fire(sio, "item:update", "a", {"id": item_id, "patch": {"x": 5}})
    _fire(sio, "item:add", "a", {"url": "/uploads/c.png"})

    assert init[0]["x"] == 200
    assert len(init) == 1
    assert b.state.get(item_id)["x"] == 5


def test_add_broadcasts_resolved_item_to_all_including_sender() -> None:
    sio, b = _setup("a", "b")

    ack = _fire(sio, "item:add", "a", {"type": "image", "url": "/uploads/a.png"})

    [to_a] = sio.received("a", "item:added")
    [to_b] = sio.received("b", "item:added")
    assert to_a == to_b == b.state.get(to_a["id"])
    assert ack == {"ok": True, "id": to_a["id"]}
    assert (to_a["x"], to_a["y"], to_a["scale"], to_a["rot"]) == (200, 150, 1, 0)
    assert to_a["opacity"] == 1
    assert to_a["visible"] is True
    assert to_a["zIndex"] == 1


def test_preview_goes_to_others_only_and_never_touches_state() -> None:
    sio, b = _setup("a", "b", "c")
    _fire(sio, "item:add", "a", {"url": "/uploads/a.png"})
    before = json.dumps(b.state.snapshot(), sort_keys=True)
    sio.sent.clear()

    _fire(sio, "item:preview", "a", {"id": "whatever", "x": 10, "y": 20, "extra": 1})
    _fire(sio, "item:preview", "a", {"id": "whatever", "x": 11, "y": 21})

    assert sio.received("a") == []
    assert sio.received("b", "item:preview") == [
        {"id": "whatever", "x": 10, "y": 20},
        {"id": "whatever", "x": 11, "y": 21},
    ]
    assert len(sio.received("c", "item:preview")) == 2
    assert json.dumps(b.state.snapshot(), sort_keys=True) == before


def test_preview_with_bad_payload_is_dropped() -> None:
    sio, _ = _setup("a", "b")

    ack = _fire(sio, "item:preview", "a", "oops")

    assert sio.received("b", "item:preview") == []
    assert ack == {"ok": False, "error": "bad_payload"}


def test_update_broadcasts_merged_item_to_all() -> None:
    sio, b = _setup("a", "b")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})
    _fire(sio, "item:add", "a", {"url": "/uploads/2.png", "loop": True})
    second = sio.received("a", "item:added")[1]

    _fire(sio, "item:update", "b", {"id": second["id"], "patch": {"x": 50}})

    [to_a] = sio.received("a", "item:updated")
    [to_b] = sio.received("b", "item:updated")
    assert to_a == to_b
    assert to_a["id"] == second["id"]
    assert to_a["patch"]["x"] == 50
    assert {k: v for k, v in to_a["patch"].items() if k != "x"} == {k: v for k, v in second.items() if k != "x"}


def test_update_unknown_id_is_silent() -> None:
    sio, b = _setup("a", "b")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})
    before = b.state.snapshot()
    sio.sent.clear()

    ack = _fire(sio, "item:update", "a", {"id": "nope", "patch": {"x": 1}})

    assert sio.sent == []
    assert b.state.snapshot() == before
    assert ack == {"ok": False, "error": "not_found"}


def test_malformed_update_payloads_do_not_crash() -> None:
    sio, b = _setup("a")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})
    sio.sent.clear()

    for payload in (None, "id", {"patch": {"x": 1}}, {"id": "x"}, {"id": "x", "patch": 3}):
        assert _fire(sio, "item:update", "a", payload) == {"ok": False, "error": "bad_payload"}

    assert sio.sent == []


def test_remove_broadcasts_bare_id_and_is_idempotent() -> None:
    sio, b = _setup("a", "b")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})
    _fire(sio, "item:add", "a", {"url": "/uploads/2.png"})
    first_id = sio.received("a", "item:added")[0]["id"]

    assert _fire(sio, "item:remove", "b", first_id) == {"ok": True}
    after_once = b.state.snapshot()
    assert _fire(sio, "item:remove", "b", first_id) == {"ok": False, "error": "not_found"}

    assert b.state.snapshot() == after_once
    assert len(after_once) == 1
    assert sio.received("a", "item:removed") == [first_id, first_id]
    assert sio.received("b", "item:removed") == [first_id, first_id]


def test_remove_without_id_is_noop() -> None:
    sio, b = _setup("a")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})
    sio.sent.clear()

    assert _fire(sio, "item:remove", "a", None) == {"ok": False, "error": "bad_payload"}
    assert _fire(sio, "item:remove", "a", {"id": "x"}) == {"ok": False, "error": "bad_payload"}

    assert sio.sent == []
    assert len(b.state) == 1


def test_clear_scenario_new_connection_gets_empty_snapshot() -> None:
    sio, b = _setup("a", "b")
    for n in range(5):
        _fire(sio, "item:add", "a", {"url": f"/uploads/{n}.png"})

    _fire(sio, "items:clear", "b")
    _connect(sio, "c")

    assert len(b.state) == 0
    assert sio.received("a", "items:cleared") == [None]
    assert sio.received("b", "items:cleared") == [None]
    assert sio.received("c", "state:init") == [[]]


def test_add_with_bad_payload_broadcasts_nothing() -> None:
    sio, b = _setup("a")
    sio.sent.clear()

    assert _fire(sio, "item:add", "a", "image") == {"ok": False, "error": "bad_payload"}
    assert _fire(sio, "item:add", "a") == {"ok": False, "error": "bad_payload"}

    assert sio.sent == []
    assert len(b.state) == 0


def test_disconnect_leaves_state_untouched() -> None:
    sio, b = _setup("a", "b")
    _fire(sio, "item:add", "a", {"url": "/uploads/1.png"})

    sio.connected.remove("a")
    _fire(sio, "disconnect", "a")

    assert "a" not in b.peers
    assert len(b.state) == 1


def test_add_keeps_working_after_peer_sends_infinite_z_index() -> None:
    sio, b = _setup("a", "b")
    _fire(sio, "item:add", "a", json.loads('{"url": "/uploads/1.png", "zIndex": Infinity}'))
    first_id = sio.received("a", "item:added")[0]["id"]
    _fire(sio, "item:update", "a", json.loads('{"id": "%s", "patch": {"zIndex": Infinity}}' % first_id))

    ack = _fire(sio, "item:add", "b", {"url": "/uploads/2.png"})

    assert ack["ok"] is True
    assert [it["zIndex"] for it in b.state.snapshot()] == [1, 2]
    assert len(sio.received("a", "item:added")) == 2
