"""Moderation package integration helpers exposed to the application."""

from gamehub.moderation.api import router
from gamehub.moderation.domain.container import configure, configure_postgres, reset_in_memory
from gamehub.moderation.workers.runner import spawn_workers

__all__ = ["router", "configure", "configure_postgres", "reset_in_memory", "spawn_workers"]
