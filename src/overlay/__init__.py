"""
방송 오버레이 동기화: 모드패널이 올린 이미지/영상을 OBS 브라우저 소스에 실시간 반영.

- create_asgi_app: FastAPI + Socket.IO ASGI 앱 (uvicorn 으로 실행).
- OBS 브라우저 소스 URL: http://127.0.0.1:3000/overlay , 모드패널: /modpanel
"""

from src.overlay.config import OverlaySettings
from src.overlay.server import create_app, create_asgi_app
from src.overlay.sockets import SceneBroadcaster

__all__ = ["OverlaySettings", "SceneBroadcaster", "create_app", "create_asgi_app"]
