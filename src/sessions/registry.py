"""
Registry of active monitoring sessions.

Sessions are created and torn down explicitly and looked up by id. The
registry owns the worker pool used for alert delivery; it holds no scoring
state of its own.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from src.alerts.notifiers import AlertDispatcher, AlertNotifier
from src.core.config import Config, config as default_config
from src.core.exceptions import SessionNotFoundError

from .session import AnalysisHook, MonitoringSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Thread-safe map of session id -> MonitoringSession.

    Args:
        settings: Configuration shared by sessions created here
        notifiers: Default notifiers attached to every new session
        analysis_hook: Default auto-analyze hook for new sessions
        async_dispatch: Deliver alerts on a worker pool (False delivers inline)
    """

    def __init__(
        self,
        settings: Optional[Config] = None,
        notifiers: Optional[Sequence[AlertNotifier]] = None,
        analysis_hook: Optional[AnalysisHook] = None,
        async_dispatch: bool = True,
    ) -> None:
        self.settings = settings or default_config
        self.notifiers = list(notifiers or [])
        self.analysis_hook = analysis_hook
        self._executor = (
            ThreadPoolExecutor(
                max_workers=self.settings.session.dispatch_workers,
                thread_name_prefix="alert-dispatch",
            )
            if async_dispatch
            else None
        )
        self._sessions: Dict[str, MonitoringSession] = {}
        self._lock = threading.Lock()

    def create(
        self,
        service: str,
        environment: str = "production",
        session_id: Optional[str] = None,
        settings: Optional[Config] = None,
        notifiers: Optional[Sequence[AlertNotifier]] = None,
        analysis_hook: Optional[AnalysisHook] = None,
    ) -> MonitoringSession:
        """
        Start a new session.

        Raises:
            ValueError: If session_id is already registered
        """
        session_id = session_id or f"session-{uuid.uuid4().hex[:12]}"
        dispatcher = AlertDispatcher(
            notifiers=list(self.notifiers) + list(notifiers or []),
            executor=self._executor,
        )
        with self._lock:
            if session_id in self._sessions:
                raise ValueError(f"Session already exists: {session_id}")
            session = MonitoringSession(
                session_id=session_id,
                service=service,
                environment=environment,
                settings=settings or self.settings,
                dispatcher=dispatcher,
                analysis_hook=analysis_hook or self.analysis_hook,
            )
            self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> MonitoringSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown session: {session_id}")
        return session

    def end(self, session_id: str) -> bool:
        """Close and remove a session; False if it was not registered."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def list(self) -> List[Dict[str, object]]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [s.summary() for s in sessions]

    def close_all(self, wait: bool = True) -> None:
        with self._lock:
            ids = list(self._sessions)
        for session_id in ids:
            self.end(session_id)
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
