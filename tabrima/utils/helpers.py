import os
from flask import url_for


def media_url(path):
    """Retourne l'URL publique d'un média (image produit/catégorie) ou None.

    - URL absolue: retournée telle quelle
    - ``static/uploads/x.png`` / ``uploads/x.png``: servi depuis le dossier static
    - nom de fichier nu: supposé sous ``uploads/products``
    """
    if not path:
        return None
    path_str = str(path)
    if path_str.startswith(('http://', 'https://')):
        return path_str

    # Nettoyer les préfixes superflus
    cleaned = path_str.lstrip('/')
    if cleaned.startswith('static/'):
        cleaned = cleaned[len('static/'):]

    if cleaned.startswith('uploads/'):
        static_path = cleaned
    elif cleaned.startswith('products/'):
        static_path = os.path.join('uploads', cleaned)
    else:
        static_path = os.path.join('uploads', 'products', cleaned)

    try:
        return url_for('static', filename=static_path)
    except RuntimeError:
        # Pas de contexte d'application: retourner chemin relatif
        return os.path.join('/static', static_path)


def parse_bool(raw, default=False):
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ('on', 'true', '1', 'yes')


def request_payload(request):
    """Données d'une requête JSON ou formulaire (multipart inclus)."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()
