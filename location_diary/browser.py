"""Browser-backed location provider.

Serves a one-page Flask app on localhost that asks the browser geolocation API
for a single fix and posts the reading (or the platform error code) back. The
provider blocks on an event until the page answers or the timeout elapses.
"""

from __future__ import annotations

import logging
import secrets
import threading
import webbrowser
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from flask import Flask, abort, jsonify, render_template_string, request
from flask.typing import ResponseReturnValue
from werkzeug.serving import BaseWSGIServer, make_server

from .capture import PositionError, SensorReading
from .config import BROWSER_CAPTURE_GRACE_SECONDS, BROWSER_CAPTURE_PORT

LOGGER = logging.getLogger(__name__)

CAPTURE_PAGE = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Location Diary</title></head>
  <body style="font-family:sans-serif; text-align:center; margin-top:50px;">
    <h3 id="status">Getting current location...</h3>
    <script>
      const nonce = {{ nonce|tojson }};
      function send(body) {
        body.nonce = nonce;
        return fetch("/position", {
          method: "POST",
          headers: {"Content-Type": "application/json"},
          body: JSON.stringify(body)
        });
      }
      function done(text) { document.getElementById("status").textContent = text; }
      if (!navigator.geolocation) {
        send({error: 0, message: "geolocation unsupported"})
          .then(() => done("This browser does not support location services."));
      } else {
        navigator.geolocation.getCurrentPosition(
          pos => {
            send({
              latitude: pos.coords.latitude,
              longitude: pos.coords.longitude,
              accuracy: pos.coords.accuracy,
              taken_at: pos.timestamp
            }).then(() => done("Location received. You can close this tab."));
          },
          err => {
            send({error: err.code, message: err.message})
              .then(() => done("Failed to get location: " + err.message));
          },
          {
            enableHighAccuracy: {{ high_accuracy|tojson }},
            maximumAge: {{ maximum_age_ms|tojson }},
            timeout: {{ timeout_ms|tojson }}
          }
        );
      }
    </script>
  </body>
</html>
"""


@dataclass
class CaptureSession:
    """State shared between the Flask routes and the waiting provider."""

    timeout_ms: int
    maximum_age_ms: int
    high_accuracy: bool
    nonce: str = field(default_factory=lambda: secrets.token_urlsafe(16))
    reading: Optional[SensorReading] = None
    error: Optional[PositionError] = None
    done: threading.Event = field(default_factory=threading.Event)

    def resolve(self, payload: Dict[str, Any]) -> None:
        if "error" in payload:
            try:
                code = int(payload["error"])
            except (TypeError, ValueError):
                code = PositionError.POSITION_UNAVAILABLE
            self.error = PositionError(code, str(payload.get("message") or ""))
        else:
            try:
                self.reading = SensorReading(
                    latitude=float(payload["latitude"]),
                    longitude=float(payload["longitude"]),
                    accuracy=_optional_float(payload.get("accuracy")),
                    taken_at=_optional_int(payload.get("taken_at")),
                )
            except (KeyError, TypeError, ValueError) as exc:
                self.error = PositionError(
                    PositionError.POSITION_UNAVAILABLE, f"bad reading: {exc}"
                )
        self.done.set()


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def create_capture_app(session: CaptureSession) -> Flask:
    """Build the Flask app serving the capture page for ``session``."""

    app = Flask(__name__)

    @app.route("/")
    def index() -> ResponseReturnValue:
        return render_template_string(
            CAPTURE_PAGE,
            nonce=session.nonce,
            high_accuracy=session.high_accuracy,
            maximum_age_ms=session.maximum_age_ms,
            timeout_ms=session.timeout_ms,
        )

    @app.route("/position", methods=["POST"])
    def position() -> ResponseReturnValue:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or payload.get("nonce") != session.nonce:
            LOGGER.error("Rejected location post with missing or invalid nonce")
            abort(400, description="Invalid nonce")
        if session.done.is_set():
            return jsonify({"status": "ignored"})
        session.resolve(payload)
        LOGGER.info("Browser location response received")
        return jsonify({"status": "ok"})

    return app


class BrowserLocationProvider:
    """Location provider that delegates to the user's web browser."""

    def __init__(
        self,
        *,
        host: str = "localhost",
        port: int = BROWSER_CAPTURE_PORT,
        grace_seconds: float = BROWSER_CAPTURE_GRACE_SECONDS,
        open_url: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self._host = host
        self._port = port
        self._grace_seconds = grace_seconds
        self._open_url = open_url

    def is_available(self) -> bool:
        try:
            webbrowser.get()
        except webbrowser.Error:
            return False
        return True

    def request_position(
        self,
        *,
        timeout: float,
        maximum_age: float,
        high_accuracy: bool,
    ) -> SensorReading:
        session = CaptureSession(
            timeout_ms=int(timeout * 1000),
            maximum_age_ms=int(maximum_age * 1000),
            high_accuracy=high_accuracy,
        )
        server = self._start_server(session)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        try:
            url = f"http://{self._host}:{self._port}/"
            LOGGER.info("Opening browser for location capture at %s", url)
            try:
                self._open_url(url)
            except (webbrowser.Error, OSError) as exc:
                raise PositionError(
                    PositionError.POSITION_UNAVAILABLE,
                    f"could not open the browser: {exc}",
                ) from exc
            if not session.done.wait(timeout=timeout + self._grace_seconds):
                raise PositionError(
                    PositionError.TIMEOUT, "no response from the browser page"
                )
        finally:
            _shutdown_server(server, thread)
        if session.error is not None:
            raise session.error
        if session.reading is None:  # pragma: no cover - resolve always sets one
            raise PositionError(PositionError.POSITION_UNAVAILABLE)
        return session.reading

    def _start_server(self, session: CaptureSession) -> BaseWSGIServer:
        # werkzeug prints and calls sys.exit when the port cannot be bound.
        try:
            return make_server(self._host, self._port, create_capture_app(session))
        except (OSError, SystemExit) as exc:
            LOGGER.error(
                "Cannot start capture server on %s:%s: %s", self._host, self._port, exc
            )
            raise PositionError(
                PositionError.POSITION_UNAVAILABLE,
                f"capture server could not listen on port {self._port}",
            ) from exc


def _shutdown_server(server: BaseWSGIServer, thread: threading.Thread) -> None:
    server.shutdown()
    thread.join(timeout=5)
    server.server_close()


__all__ = ["BrowserLocationProvider", "CaptureSession", "create_capture_app"]
