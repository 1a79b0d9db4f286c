"""
오버레이 동기화 서버. FastAPI(업로드/페이지/정적 파일) + Socket.IO(씬 실시간 동기화)를 하나의 ASGI 앱으로.

- /overlay : OBS 브라우저 소스용 페이지
- /modpanel : 모드패널 (업로드, 배치, 드래그 미리보기)
- /api/upload : MOD_KEY 인증 후 파일 저장, 상대 URL 반환
- /socket.io : 씬 이벤트 채널 (src.overlay.sockets)
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

import socketio
from fastapi import FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from src.overlay.config import OverlaySettings
from src.overlay.sockets import SceneBroadcaster
from src.scene import SceneState
from src.uploads import UploadStore

logger = logging.getLogger(__name__)


def _key_matches(given: Optional[str], expected: str) -> bool:
    if not given:
        return False
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def create_app(settings: OverlaySettings, state: Optional[SceneState] = None) -> FastAPI:
    """HTTP 쪽 앱. state 는 /api/state 조회용으로만 사용 (변경은 소켓으로만)."""
    state = state if state is not None else SceneState()
    store = UploadStore(settings.public_dir, settings.upload_subdir)
    public_dir = settings.public_dir

    app = FastAPI(title="Overlay Scene Sync", docs_url=None, redoc_url=None)
    app.state.scene = state
    app.state.uploads = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def _page(name: str) -> FileResponse:
        path = public_dir / name
        if not path.is_file():
            raise HTTPException(status_code=404, detail=f"{name} not found")
        return FileResponse(path, media_type="text/html")

    @app.get("/overlay")
    def overlay_page():
        """OBS 브라우저 소스에 넣을 페이지."""
        return _page("overlay.html")

    @app.get("/modpanel")
    def modpanel_page():
        return _page("modpanel.html")

    @app.get("/api/state")
    def get_state():
        """현재 씬 스냅샷 (디버그용, 읽기 전용)."""
        return JSONResponse({"items": state.snapshot()})

    @app.post("/api/upload")
    def upload_file(
        file: Optional[UploadFile] = File(None),
        x_mod_key: Optional[str] = Header(None),
        key: Optional[str] = Query(None),
    ):
        """헤더 x-mod-key 또는 ?key= 로 인증. 결과는 요청한 쪽에만 응답 (방송 X)."""
        if not _key_matches(x_mod_key or key, settings.mod_key):
            logger.warning("Upload rejected: bad mod key")
            return JSONResponse({"ok": False, "error": "unauthorized"}, status_code=401)
        if file is None or not file.filename:
            return JSONResponse({"ok": False, "error": "no_file"}, status_code=400)
        try:
            url = store.save(file.filename, file.file)
        finally:
            file.file.close()
        return JSONResponse({"ok": True, "url": url})

    # 라우트 뒤에 마운트해야 /overlay 등이 먼저 매칭됨. /uploads/* 도 여기서 서빙
    app.mount("/", StaticFiles(directory=str(public_dir)), name="public")
    return app


def create_asgi_app(
    settings: Optional[OverlaySettings] = None,
    state: Optional[SceneState] = None,
) -> socketio.ASGIApp:
    """Socket.IO 서버와 FastAPI 앱을 같은 SceneState 로 묶은 ASGI 앱 (uvicorn 에 그대로 전달)."""
    settings = settings or OverlaySettings.from_env()
    state = state if state is not None else SceneState()

    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.cors_origins,
        logger=False,
        engineio_logger=False,
    )
    SceneBroadcaster(sio, state).register()
    app = create_app(settings, state)
    logger.info("Overlay server ready: public_dir=%s origins=%s", settings.public_dir, settings.allowed_origins)
    return socketio.ASGIApp(sio, other_asgi_app=app)
