"""Moderation worker exports."""

from .notifications_worker import NotificationsWorker
from .runner import spawn_workers

__all__ = [
	"NotificationsWorker",
	"spawn_workers",
]
