"""
Limitation de débit en mémoire (fenêtre fixe par IP).

- Un limiteur global appliqué à toutes les requêtes
- Un limiteur strict pour les endpoints sensibles (connexion admin)
- Réponse 429 JSON + en-têtes RateLimit-* quand la limite est atteinte
"""
import logging
import math
import time
from collections import defaultdict
from threading import Lock

from flask import request, jsonify, g

log = logging.getLogger(__name__)


class FixedWindowLimiter:
    """Compteur de requêtes par clé sur une fenêtre fixe."""

    def __init__(self, window_ms: int, max_requests: int, clock=time.monotonic):
        self.window = window_ms / 1000.0
        self.max_requests = max_requests
        self._clock = clock
        self._windows = defaultdict(lambda: {"count": 0, "reset_at": 0.0})
        self._lock = Lock()
        self._next_sweep = 0.0

    def hit(self, key: str):
        """Enregistre une requête. Retourne (autorisée, restantes, secondes avant reset)."""
        with self._lock:
            now = self._clock()
            # Purge des IP expirées au plus une fois par fenêtre
            if now >= self._next_sweep:
                self._purge(now)
                self._next_sweep = now + self.window
            bucket = self._windows[key]
            if now >= bucket["reset_at"]:
                bucket["count"] = 0
                bucket["reset_at"] = now + self.window
            bucket["count"] += 1
            remaining = max(0, self.max_requests - bucket["count"])
            reset_in = max(0, math.ceil(bucket["reset_at"] - now))
            return bucket["count"] <= self.max_requests, remaining, reset_in

    def _purge(self, now):
        stale = [k for k, v in self._windows.items() if now >= v["reset_at"]]
        for k in stale:
            del self._windows[k]

    def cleanup(self):
        """Supprime les fenêtres expirées."""
        with self._lock:
            self._purge(self._clock())


def _client_key():
    return request.remote_addr or "unknown"


def _too_many(message, limiter, reset_in):
    resp = jsonify({"success": False, "message": message})
    resp.status_code = 429
    resp.headers["RateLimit-Limit"] = str(limiter.max_requests)
    resp.headers["RateLimit-Remaining"] = "0"
    resp.headers["RateLimit-Reset"] = str(reset_in)
    resp.headers["Retry-After"] = str(reset_in)
    return resp


def init_rate_limiting(app):
    """Branche les limiteurs global et strict sur l'application.

    Sans effet si RATE_LIMIT_ENABLED est faux (dev / tests).
    """
    if not app.config.get("RATE_LIMIT_ENABLED"):
        return None

    limiter = FixedWindowLimiter(
        app.config["RATE_LIMIT_WINDOW_MS"], app.config["RATE_LIMIT_MAX_REQUESTS"]
    )
    strict = FixedWindowLimiter(
        app.config["RATE_LIMIT_STRICT_WINDOW_MS"], app.config["RATE_LIMIT_STRICT_MAX_REQUESTS"]
    )
    strict_paths = tuple(app.config.get("RATE_LIMIT_STRICT_PATHS", ()))
    app.extensions["rate_limiters"] = {"default": limiter, "strict": strict}

    @app.before_request
    def apply_rate_limits():
        key = _client_key()
        allowed, remaining, reset_in = limiter.hit(key)
        if not allowed:
            log.warning("Rate limit dépassé: %s %s", key, request.path)
            return _too_many("Too many requests from this IP, please try again later.", limiter, reset_in)
        g.rate_limit = (limiter.max_requests, remaining, reset_in)

        if request.path.startswith(strict_paths):
            allowed, _, reset_in = strict.hit(key)
            if not allowed:
                log.warning("Rate limit strict dépassé: %s %s", key, request.path)
                return _too_many("Too many attempts, please try again later.", strict, reset_in)
        return None

    @app.after_request
    def add_rate_limit_headers(response):
        info = g.get("rate_limit")
        if info and "RateLimit-Limit" not in response.headers:
            limit, remaining, reset_in = info
            response.headers["RateLimit-Limit"] = str(limit)
            response.headers["RateLimit-Remaining"] = str(remaining)
            response.headers["RateLimit-Reset"] = str(reset_in)
        return response

    return limiter
