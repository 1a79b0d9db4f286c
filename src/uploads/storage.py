"""
업로드 파일을 public/<upload_subdir>/ 에 저장하고 정적 서빙용 상대 URL 반환.
로컬 디스크라 재시작/재배포 시 사라질 수 있음 (씬 상태와 마찬가지로 영속 X).
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path, PurePath
from typing import BinaryIO, Union

from src.scene.items import random_token

logger = logging.getLogger(__name__)


class UploadStore:
    def __init__(self, public_dir: Union[str, Path], upload_subdir: str = "uploads"):
        self.public_dir = Path(public_dir)
        self.upload_dir = self.public_dir / upload_subdir
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def _new_name(self, original: str) -> str:
        # 원본 이름은 확장자만 사용 (경로 조작 방지)
        ext = PurePath(original.replace("\\", "/")).suffix if original else ""
        return f"{int(time.time() * 1000)}-{random_token()}{ext}"

    def save(self, original_name: str, data: Union[bytes, BinaryIO]) -> str:
        """파일 저장 후 /uploads/xxx.png 형태의 상대 URL 반환."""
        path = self.upload_dir / self._new_name(original_name or "")
        with open(path, "wb") as f:
            if isinstance(data, (bytes, bytearray)):
                f.write(data)
            else:
                shutil.copyfileobj(data, f)
        rel = path.relative_to(self.public_dir).as_posix()
        url = "/" + rel
        logger.info("Upload saved: %s (%d bytes)", url, path.stat().st_size)
        return url
