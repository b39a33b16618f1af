import os
import secrets
import time
import logging

from werkzeug.utils import secure_filename

# Uploads locaux: UPLOAD_FOLDER/<sous-dossier>/<timestamp>_<hex><ext>
ALLOWED_IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp', '.svg'}

_logger = logging.getLogger(__name__)


class UploadError(ValueError):
    pass


def _generated_name(filename: str) -> str:
    _, ext = os.path.splitext(secure_filename(filename or ''))
    ext = ext.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise UploadError(f"Extension de fichier non autorisée: {ext or '(aucune)'}")
    return f"{int(time.time())}_{secrets.token_hex(6)}{ext}"


def save_upload(file_storage, upload_folder: str, subfolder: str) -> str | None:
    """
    Enregistre le fichier sur disque et retourne son chemin relatif au dossier
    static (ex: ``uploads/products/1700000000_ab12cd34ef56.png``).
    Retourne None si aucun fichier n'a été envoyé.
    """
    if not file_storage or not getattr(file_storage, 'filename', None):
        return None

    generated = _generated_name(file_storage.filename)
    folder = (subfolder or '').strip('/')
    target_dir = os.path.join(upload_folder, folder)
    os.makedirs(target_dir, exist_ok=True)
    file_storage.save(os.path.join(target_dir, generated))
    _logger.info("Fichier enregistré: %s/%s", folder, generated)

    parts = ['uploads', folder, generated] if folder else ['uploads', generated]
    return '/'.join(parts)


def delete_upload(relative_path: str | None, upload_folder: str) -> bool:
    """Supprime un fichier précédemment enregistré par save_upload."""
    if not relative_path or relative_path.startswith(('http://', 'https://')):
        return False
    cleaned = relative_path.lstrip('/')
    if cleaned.startswith('uploads/'):
        cleaned = cleaned[len('uploads/'):]
    path = os.path.normpath(os.path.join(upload_folder, cleaned))
    if not path.startswith(os.path.normpath(upload_folder) + os.sep):
        return False
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        _logger.warning("Suppression du fichier %s impossible: %s", path, exc)
        return False
