"""
Alerts module: tiered alert state machine and fire-and-forget delivery.
"""

from .engine import AlertEngine, build_message, recommend_action
from .notifiers import (
	AlertDispatcher,
	AlertNotifier,
	CallbackNotifier,
	LoggingNotifier,
	WebhookNotifier,
)
from .schema import AlertRecord, AlertSeverity

__all__ = [
	"AlertEngine",
	"AlertRecord",
	"AlertSeverity",
	"build_message",
	"recommend_action",
	"AlertDispatcher",
	"AlertNotifier",
	"CallbackNotifier",
	"LoggingNotifier",
	"WebhookNotifier",
]
