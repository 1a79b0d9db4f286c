"""씬 아이템 id 생성 및 기본값 채우기. 추가(item:add) 시점에만 적용, 업데이트 때는 다시 채우지 않음."""

from __future__ import annotations

import math
import secrets
import time
from typing import Any, Iterable

# 값이 없거나 None 인 필드만 채움 (opacity=0, visible=False 등은 그대로)
ITEM_DEFAULTS: dict[str, Any] = {
    "x": 200,
    "y": 150,
    "scale": 1,
    "rot": 0,
    "opacity": 1,
    "visible": True,
}

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def random_token(nbytes: int = 8) -> str:
    """소문자+숫자 랜덤 문자열 (파일명/id 용)."""
    return _base36(secrets.randbits(nbytes * 8))


def new_item_id() -> str:
    """it_<epoch ms>_<random>. 같은 ms 에 여러 개 생겨도 랜덤 부분으로 구분."""
    return f"it_{int(time.time() * 1000)}_{random_token()}"


def is_valid_z_index(z: Any) -> bool:
    """유한한 숫자만 zIndex 로 인정 (bool, None, 문자열, inf/nan 제외)."""
    if isinstance(z, bool) or not isinstance(z, (int, float)):
        return False
    return math.isfinite(z)


def _z_of(item: dict) -> float:
    z = item.get("zIndex")
    return z if is_valid_z_index(z) else 0


def next_z_index(items: Iterable[dict]) -> int:
    """비어 있으면 1, 아니면 기존 zIndex 최댓값 + 1. 숫자가 아니거나 inf/nan 인 zIndex 는 0 취급."""
    items = list(items)
    if not items:
        return 1
    return int(max(_z_of(it) for it in items)) + 1


def resolve_item(raw: dict, existing: Iterable[dict] = ()) -> dict:
    """
    클라이언트가 보낸 부분 아이템을 완전한 레코드로 만든다 (원본 dict 는 건드리지 않음).

    - id: 없거나 빈 값이거나 기존 id 와 겹치면 서버가 새로 발급
    - x/y/scale/rot/opacity/visible: ITEM_DEFAULTS
    - zIndex: 없거나 유한한 숫자가 아니면 next_z_index(existing)
    - type, url, muted, loop 등 나머지 필드는 그대로 통과
    """
    existing = list(existing)
    item = dict(raw)

    taken = {it.get("id") for it in existing}
    item_id = item.get("id")
    if not isinstance(item_id, str) or not item_id or item_id in taken:
        item_id = new_item_id()
        while item_id in taken:
            item_id = new_item_id()
    item["id"] = item_id

    for key, default in ITEM_DEFAULTS.items():
        if item.get(key) is None:
            item[key] = default
    if not is_valid_z_index(item.get("zIndex")):
        item["zIndex"] = next_z_index(existing)
    return item
