"""오버레이 씬 공유 상태. 프로세스 메모리에만 있고 재시작하면 빈 목록으로 돌아감."""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from src.scene.items import is_valid_z_index, resolve_item

logger = logging.getLogger(__name__)


class SceneState:
    """
    아이템 목록을 소유하는 유일한 컨테이너. 외부는 add/update/remove/clear 로만 변경.

    asyncio 단일 루프에서 핸들러가 await 전에 변경을 끝내므로 락은 두지 않음.
    반환값은 전부 사본이라 호출 측에서 수정해도 저장된 상태에 영향 없음.
    """

    def __init__(self) -> None:
        self._items: list[dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return self._index_of(item_id) != -1

    def _index_of(self, item_id: object) -> int:
        for i, it in enumerate(self._items):
            if it["id"] == item_id:
                return i
        return -1

    def snapshot(self) -> list[dict[str, Any]]:
        """현재 목록 전체의 깊은 복사 (state:init 용, 삽입 순서 유지)."""
        return copy.deepcopy(self._items)

    def get(self, item_id: str) -> Optional[dict[str, Any]]:
        i = self._index_of(item_id)
        if i == -1:
            return None
        return copy.deepcopy(self._items[i])

    def add(self, raw: Any) -> Optional[dict[str, Any]]:
        """기본값 채워 뒤에 추가. dict 가 아니면 무시하고 None."""
        if not isinstance(raw, dict):
            logger.debug("add ignored: payload is %s", type(raw).__name__)
            return None
        item = resolve_item(raw, self._items)
        self._items.append(item)
        logger.info("Scene add: id=%s type=%s zIndex=%s", item["id"], item.get("type"), item["zIndex"])
        return copy.deepcopy(item)

    def update(self, item_id: Any, patch: Any) -> Optional[dict[str, Any]]:
        """
        patch 를 기존 아이템 위에 얕게 병합하고 병합 결과를 반환.
        없는 id, 잘못된 payload 면 아무것도 바꾸지 않고 None.
        patch 안의 id, 유한한 숫자가 아닌 zIndex 는 무시 (기존 값 유지).
        """
        if not isinstance(item_id, str) or not item_id:
            logger.debug("update ignored: missing id")
            return None
        if not isinstance(patch, dict):
            logger.debug("update ignored: patch is %s", type(patch).__name__)
            return None
        i = self._index_of(item_id)
        if i == -1:
            logger.debug("update ignored: unknown id=%s", item_id)
            return None
        merged = {**self._items[i], **patch}
        merged["id"] = item_id
        if not is_valid_z_index(merged.get("zIndex")):
            merged["zIndex"] = self._items[i]["zIndex"]
        self._items[i] = merged
        logger.debug("Scene update: id=%s keys=%s", item_id, sorted(patch))
        return copy.deepcopy(merged)

    def remove(self, item_id: Any) -> bool:
        """해당 id 제거. 없으면 그대로 (여러 번 호출해도 결과 같음)."""
        before = len(self._items)
        self._items = [it for it in self._items if it["id"] != item_id]
        removed = len(self._items) != before
        if removed:
            logger.info("Scene remove: id=%s", item_id)
        return removed

    def clear(self) -> int:
        """전체 삭제. 지운 개수 반환."""
        count = len(self._items)
        self._items = []
        logger.info("Scene clear: %d items", count)
        return count
