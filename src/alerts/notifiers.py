"""
Alert delivery.

Notifiers are fire-and-forget: the dispatcher runs them on a worker pool so
the tick path never waits on network I/O, and a failing notifier is logged
without affecting the alert log or the other notifiers.
"""

from __future__ import annotations

import json
import logging
import urllib.request
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .schema import AlertRecord, AlertSeverity

logger = logging.getLogger(__name__)


class AlertNotifier(ABC):
    """
    Abstract alert transport.

    Subclasses deliver one alert; raising signals a delivery failure.
    """

    name: str = "notifier"

    @abstractmethod
    def send(self, alert: AlertRecord) -> None:
        pass


class LoggingNotifier(AlertNotifier):
    """Writes alerts to the application log."""

    name = "log"

    def send(self, alert: AlertRecord) -> None:
        level = logging.WARNING if alert.severity == AlertSeverity.WARNING else logging.ERROR
        logger.log(level, f"[{alert.session_id}] {alert.message} | {alert.action}")


class CallbackNotifier(AlertNotifier):
    """Hands alerts to an in-process callable (websocket broadcast, queues)."""

    def __init__(self, callback: Callable[[AlertRecord], None], name: str = "callback") -> None:
        self.callback = callback
        self.name = name

    def send(self, alert: AlertRecord) -> None:
        self.callback(alert)


class WebhookNotifier(AlertNotifier):
    """
    POSTs the alert as JSON to a webhook URL.

    Only severities in `severities` are sent (all when None).
    """

    name = "webhook"

    def __init__(self, url: str, timeout: float = 5.0, severities: Optional[Sequence[str]] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.severities = set(severities) if severities else None

    def send(self, alert: AlertRecord) -> None:
        if self.severities is not None and alert.severity.value not in self.severities:
            return
        body = json.dumps(alert.model_dump(mode="json")).encode("utf-8")
        request = urllib.request.Request(
            self.url,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            if response.status >= 400:
                raise RuntimeError(f"Webhook returned HTTP {response.status}")


class AlertDispatcher:
    """
    Delivers alerts to every notifier without blocking the caller.

    Pass executor=None to deliver inline (still failure-isolated); used by
    the CLI replay and tests.
    """

    def __init__(
        self,
        notifiers: Optional[Sequence[AlertNotifier]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.notifiers: List[AlertNotifier] = list(notifiers or [])
        self.executor = executor

    def add(self, notifier: AlertNotifier) -> None:
        self.notifiers.append(notifier)

    def dispatch(self, alert: AlertRecord) -> List[Future]:
        futures: List[Future] = []
        for notifier in self.notifiers:
            if self.executor is None:
                _deliver(notifier, alert)
                continue
            future = self.executor.submit(_deliver, notifier, alert)
            futures.append(future)
        return futures

    def submit(self, fn: Callable[..., None], *args: object) -> Optional[Future]:
        """Run an arbitrary hook with the same isolation as notifiers."""
        if self.executor is None:
            _run_guarded(fn, *args)
            return None
        return self.executor.submit(_run_guarded, fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=wait)


def _deliver(notifier: AlertNotifier, alert: AlertRecord) -> None:
    try:
        notifier.send(alert)
    except Exception as exc:
        logger.error(f"Notifier {notifier.name} failed for {alert.alert_id}: {exc}")


def _run_guarded(fn: Callable[..., None], *args: object) -> None:
    try:
        fn(*args)
    except Exception as exc:
        logger.exception(f"Hook {getattr(fn, '__name__', fn)!s} failed: {exc}")
