# tabrima/utils/__init__.py
from .helpers import media_url
from .storage import save_upload, delete_upload, UploadError

__all__ = ['media_url', 'save_upload', 'delete_upload', 'UploadError']
