"""
오버레이 동기화 서버 실행.

.env 에 MOD_KEY (업로드 인증 키), 필요 시 PORT / ALLOWED_ORIGIN / PUBLIC_DIR 설정 후 실행.
실행: python examples/overlay_server.py  (프로젝트 루트에서)

- OBS 브라우저 소스: http://127.0.0.1:3000/overlay
- 모드패널: http://127.0.0.1:3000/modpanel?key=<MOD_KEY>
- 씬 상태는 메모리에만 있음. 서버 재시작하면 빈 화면부터 다시 시작.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn
from dotenv import load_dotenv

from src.overlay import OverlaySettings, create_asgi_app
from src.utils import setup_logging

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def main() -> None:
    log_dir = setup_logging()
    settings = OverlaySettings.from_env()
    app = create_asgi_app(settings)
    print(f"서버 실행: http://localhost:{settings.port}  (overlay: /overlay, modpanel: /modpanel, logs: {log_dir})")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
