"""
오버레이 씬 상태: 모드패널이 올린 이미지/영상 아이템 목록.

- SceneState: 프로세스 메모리에만 존재 (재시작 시 초기화).
- resolve_item: 추가 시점에 한 번만 기본값 채움.
"""

from src.scene.items import ITEM_DEFAULTS, new_item_id, next_z_index, resolve_item
from src.scene.state import SceneState

__all__ = ["ITEM_DEFAULTS", "SceneState", "new_item_id", "next_z_index", "resolve_item"]
