"""오버레이 서버 설정. .env 는 실행 스크립트에서 load_dotenv 로 미리 읽어 둠."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_MOD_KEY = "CAMBIA-ESTA-CLAVE"


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


@dataclass
class OverlaySettings:
    host: str = "0.0.0.0"
    port: int = 3000
    mod_key: str = DEFAULT_MOD_KEY
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    public_dir: Path = field(default_factory=lambda: _project_root() / "public")
    upload_subdir: str = "uploads"

    @property
    def cors_origins(self):
        """Socket.IO cors_allowed_origins 값. '*' 하나면 문자열로."""
        if self.allowed_origins == ["*"]:
            return "*"
        return list(self.allowed_origins)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "OverlaySettings":
        """
        환경 변수에서 설정 구성.

        PORT, HOST, MOD_KEY, ALLOWED_ORIGIN(쉼표 구분), PUBLIC_DIR, UPLOAD_SUBDIR

        Raises:
            ValueError: PORT 가 정수가 아닐 때
        """
        env = os.environ if env is None else env
        port_raw = (env.get("PORT") or "3000").strip()
        try:
            port = int(port_raw)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {port_raw!r}") from None

        origins = [o.strip() for o in (env.get("ALLOWED_ORIGIN") or "*").split(",") if o.strip()]
        public_dir = env.get("PUBLIC_DIR")
        settings = cls(
            host=(env.get("HOST") or "0.0.0.0").strip(),
            port=port,
            mod_key=env.get("MOD_KEY") or DEFAULT_MOD_KEY,
            allowed_origins=origins or ["*"],
            public_dir=Path(public_dir) if public_dir else _project_root() / "public",
            upload_subdir=(env.get("UPLOAD_SUBDIR") or "uploads").strip("/\\ ") or "uploads",
        )
        if settings.mod_key == DEFAULT_MOD_KEY:
            logger.warning("MOD_KEY not set, using the default key. Set MOD_KEY in .env")
        return settings
