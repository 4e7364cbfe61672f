"""
Minimal backend HTTP server for the Service Risk Sentinel.

Exposes session lifecycle and tick ingestion endpoints without introducing
new dependencies. Metric sources push ticks; alerts are delivered through
the registry's notifiers and listed per session.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import ValidationError

from backend.incident import AnalysisContext, AnalysisContextBuilder
from src.alerts import AlertNotifier, LoggingNotifier, WebhookNotifier
from src.core.config import config
from src.core.exceptions import (
    DataValidationError,
    OutOfOrderTickError,
    SessionClosedError,
    SessionNotFoundError,
)
from src.core.logging_config import setup_logging
from src.data.schema import MetricSnapshot
from src.sessions import SessionRegistry

load_dotenv()

logger = logging.getLogger("backend")

REGISTRY: Optional[SessionRegistry] = None
ANALYSES: Dict[str, List[AnalysisContext]] = {}
MAX_ANALYSES_PER_SESSION = 20

# Guards REGISTRY creation and ANALYSES; hooks run on dispatcher threads
_STATE_LOCK = threading.Lock()


def _notifiers() -> List[AlertNotifier]:
    notifiers: List[AlertNotifier] = [LoggingNotifier()]
    webhook_url = os.getenv("ALERT_WEBHOOK_URL")
    if webhook_url:
        severities = [s.strip() for s in os.getenv("ALERT_WEBHOOK_SEVERITIES", "").split(",") if s.strip()]
        notifiers.append(WebhookNotifier(webhook_url, severities=severities or None))
    return notifiers


def _store_analysis(context: AnalysisContext) -> None:
    with _STATE_LOCK:
        # The session may have ended while the hook was in flight
        if REGISTRY is None or context.session_id not in REGISTRY:
            logger.debug(f"Dropping analysis context for ended session {context.session_id}")
            return
        items = ANALYSES.setdefault(context.session_id, [])
        items.insert(0, context)
        del items[MAX_ANALYSES_PER_SESSION:]


def _analyses(session_id: str) -> List[AnalysisContext]:
    with _STATE_LOCK:
        return list(ANALYSES.get(session_id, []))


def _registry() -> SessionRegistry:
    global REGISTRY
    with _STATE_LOCK:
        if REGISTRY is None:
            REGISTRY = SessionRegistry(
                settings=config,
                notifiers=_notifiers(),
                analysis_hook=AnalysisContextBuilder().hook(_store_analysis),
            )
        return REGISTRY


def _split_session_path(path: str) -> Optional[Tuple[str, str]]:
    # /sessions/<id>/<action>
    parts = path.strip("/").split("/")
    if len(parts) != 3 or parts[0] != "sessions":
        return None
    return parts[1], parts[2]


class BackendHandler(BaseHTTPRequestHandler):
    server_version = "SentinelBackend/1.0"

    def _send_json(self, status: int, payload: object) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json(self) -> Optional[Dict[str, object]]:
        length = int(self.headers.get("Content-Length", "0"))
        if length <= 0:
            return None
        data = self.rfile.read(length)
        try:
            payload = json.loads(data.decode("utf-8"))
        except json.JSONDecodeError:
            return None
        return payload if isinstance(payload, dict) else None

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        if self.path == "/health":
            self._send_json(200, {"status": "ok", "sessions": len(_registry())})
            return

        if self.path == "/sessions":
            self._send_json(200, {"sessions": _registry().list()})
            return

        target = _split_session_path(self.path)
        if target is not None:
            session_id, action = target
            try:
                session = _registry().get(session_id)
            except SessionNotFoundError as exc:
                self._send_json(404, {"detail": str(exc)})
                return

            if action == "alerts":
                alerts = [a.model_dump(mode="json") for a in session.alerts()]
                self._send_json(200, {"alerts": alerts, "total_count": len(alerts)})
                return

            if action == "analyses":
                analyses = [c.model_dump(mode="json") for c in _analyses(session_id)]
                self._send_json(200, {"analyses": analyses, "total_count": len(analyses)})
                return

        self._send_json(404, {"detail": "Not found"})

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.end_headers()

    def do_POST(self) -> None:
        if self.path == "/sessions":
            self._handle_start()
            return

        target = _split_session_path(self.path)
        if target is not None:
            session_id, action = target
            if action == "ticks":
                self._handle_tick(session_id)
                return
            if action == "end":
                self._handle_end(session_id)
                return

        self._send_json(404, {"detail": "Not found"})

    def _handle_start(self) -> None:
        payload = self._read_json() or {}
        service = str(payload.get("service") or "unknown")
        environment = str(payload.get("environment") or "production")
        session_id = payload.get("session_id")
        try:
            session = _registry().create(
                service=service,
                environment=environment,
                session_id=str(session_id) if session_id else None,
            )
        except ValueError as exc:
            self._send_json(409, {"detail": str(exc)})
            return
        self._send_json(201, session.summary())

    def _handle_tick(self, session_id: str) -> None:
        payload = self._read_json()
        if payload is None:
            self._send_json(400, {"detail": "Expected a JSON snapshot"})
            return

        try:
            session = _registry().get(session_id)
            snapshot = MetricSnapshot.model_validate(payload)
            outcome = session.process(snapshot)
        except SessionNotFoundError as exc:
            self._send_json(404, {"detail": str(exc)})
            return
        except (ValidationError, DataValidationError) as exc:
            self._send_json(422, {"detail": str(exc)})
            return
        except (OutOfOrderTickError, SessionClosedError) as exc:
            self._send_json(409, {"detail": str(exc)})
            return

        self._send_json(200, outcome.model_dump(mode="json", exclude={"snapshot"}))

    def _handle_end(self, session_id: str) -> None:
        if not _registry().end(session_id):
            self._send_json(404, {"detail": f"Unknown session: {session_id}"})
            return
        with _STATE_LOCK:
            ANALYSES.pop(session_id, None)
        self._send_json(200, {"id": session_id, "status": "COMPLETED"})


def run(host: str, port: int) -> None:
    setup_logging("")
    logger.info("Starting backend server on %s:%s", host, port)
    server = ThreadingHTTPServer((host, port), BackendHandler)
    try:
        server.serve_forever()
    finally:
        _registry().close_all(wait=False)


def main() -> None:
    parser = argparse.ArgumentParser(description="Service Risk Sentinel backend server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    run(args.host, args.port)


if __name__ == "__main__":
    main()
