"""
HTTP surface for the OAuth consent round trip.

``GET /auth/start`` redirects the browser to Google's consent screen and
``GET /auth/callback`` exchanges the returned code for tokens. The server
runs in a daemon thread next to the scheduler.
"""

from __future__ import annotations

import html
import logging
import threading
from typing import Optional, Protocol

from flask import Flask, jsonify, redirect, request
from werkzeug.serving import BaseWSGIServer, make_server

LOGGER = logging.getLogger(__name__)


class Authorizer(Protocol):
    def authorization_url(self) -> str: ...

    def exchange_code(self, code: str) -> None: ...


class HasCredentials(Protocol):
    def exists(self) -> bool: ...


def create_app(authorizer: Authorizer, store: HasCredentials) -> Flask:
    app = Flask(__name__)

    @app.get("/auth/start")
    def auth_start():
        return redirect(authorizer.authorization_url())

    @app.get("/auth/callback")
    def auth_callback():
        error = request.args.get("error")
        if error:
            LOGGER.warning("Authorization was declined: %s", error)
            return f"<h1>Authorization Failed</h1><p>Error: {html.escape(error)}</p>", 400

        code = request.args.get("code")
        if not code:
            return "Missing authorization code", 400

        try:
            authorizer.exchange_code(code)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Error exchanging code for tokens: %s", exc)
            return "Internal Server Error", 500
        return "Authentication successful! You can now start using the app."

    @app.get("/healthz")
    def healthz():
        return jsonify(status="ok", authorized=store.exists())

    return app


class AuthServer:
    """Serve the Flask app from a background thread."""

    def __init__(self, app: Flask, host: str = "localhost", port: int = 3000):
        self.app = app
        self.host = host
        self.port = port
        self.server: Optional[BaseWSGIServer] = None
        self.server_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.server_thread and self.server_thread.is_alive():
            return
        self.server = make_server(self.host, self.port, self.app, threaded=True)
        self.server_thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.server_thread.start()
        LOGGER.info("Server is running on http://%s:%s", self.host, self.port)

    def stop(self) -> None:
        if self.server:
            self.server.shutdown()
        if self.server_thread:
            self.server_thread.join(timeout=5)
            if self.server_thread.is_alive():
                LOGGER.warning("Auth server thread did not stop within timeout")
        self.server = None
        self.server_thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
