"""
OAuth Callback Server for the Dropbox client.

Receives the authorize redirect on a loopback port. The server thread only
records the redirect's query parameters; the thread that started the flow
picks them up with wait_for_redirect(), so the state machine never runs on
the server thread.
"""

import asyncio
import html
import logging
import queue
import socket
import threading
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from .oauth_config import CALLBACK_PATH

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 3.0

_PAGE = """<!DOCTYPE html>
<html>
<head><title>{title}</title></head>
<body style="font-family: sans-serif; text-align: center; margin-top: 15vh; color: {color}">
  <h1>{title}</h1>
  <p>{message}</p>
  <p style="color: #666">This window can be closed now.</p>
</body>
</html>
"""


def _render_page(title: str, message: str, ok: bool) -> str:
    return _PAGE.format(
        title=title,
        message=html.escape(message),
        color="#0061fe" if ok else "#c0392b",
    )


def _port_available(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        try:
            probe.bind((host, port))
        except OSError:
            return False
    return True


class CallbackServer:
    """
    Loopback HTTP server for one or more authorize redirects.

    Runs uvicorn on a daemon thread between start() and stop().
    """

    def __init__(self, port: int = 9877, base_uri: str = "http://localhost") -> None:
        self.port = port
        self.host = urlparse(base_uri).hostname or "localhost"
        self.app = FastAPI()
        self.app.add_api_route(
            CALLBACK_PATH, self._receive_redirect, methods=["GET"], response_class=HTMLResponse
        )
        self.is_running = False
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._redirects: "queue.Queue[Dict[str, Any]]" = queue.Queue()

    async def _receive_redirect(self, request: Request) -> HTMLResponse:
        params = dict(request.query_params)
        self._redirects.put(params)

        if params.get("error"):
            reason = params.get("error_description") or params["error"]
            logger.error(f"Authorize redirect returned an error: {params['error']}")
            page = _render_page("Authorization Failed", f"Dropbox returned an error: {reason}", False)
            return HTMLResponse(page, status_code=400)
        if not params.get("code"):
            logger.error("Authorize redirect carried no authorization code")
            page = _render_page("Authorization Failed", "No authorization code was received.", False)
            return HTMLResponse(page, status_code=400)

        logger.info("Received the authorize redirect")
        return HTMLResponse(
            _render_page("Authorization Received", "Dropbox sent the authorization back.", True)
        )

    def wait_for_redirect(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """
        Block until the browser hits the callback route.

        Returns:
            The redirect's query parameters, or None on timeout.
        """
        try:
            return self._redirects.get(timeout=timeout)
        except queue.Empty:
            logger.warning(f"No authorize redirect received within {timeout} seconds")
            return None

    def start(self) -> Tuple[bool, str]:
        """
        Start serving in the background.

        Returns:
            (True, "") once the server accepts connections, else (False, reason).
        """
        if self.is_running:
            return True, ""
        if not _port_available(self.host, self.port):
            reason = f"Port {self.port} is already in use"
            logger.error(reason)
            return False, reason

        config = uvicorn.Config(
            self.app, host=self.host, port=self.port, log_level="warning", access_log=False
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self._server.serve()),
            name="dropbox-oauth-callback",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + STARTUP_TIMEOUT
        while time.monotonic() < deadline:
            if self._server.started:
                self.is_running = True
                logger.info(f"Callback server listening on {self.host}:{self.port}")
                return True, ""
            if not self._thread.is_alive():
                break
            time.sleep(0.05)

        self.stop()
        reason = f"Callback server did not start on {self.host}:{self.port}"
        logger.error(reason)
        return False, reason

    def stop(self) -> None:
        """Ask uvicorn to exit and wait briefly for the thread."""
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=STARTUP_TIMEOUT)
        if self.is_running:
            logger.info("Callback server stopped")
        self._server = None
        self._thread = None
        self.is_running = False
