"""모드패널 파일 업로드 저장소"""
from .storage import UploadStore

__all__ = ["UploadStore"]
