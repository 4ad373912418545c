"""
Command dispatch.

Mediator is a plain table from command type to handler object. send() wraps
every handler call with request logging, timing and transaction cleanup: a
handler that raises leaves no partial writes behind.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from services.exceptions import AppError

logger = logging.getLogger(__name__)


class Mediator:
    def __init__(self, storage):
        self.storage = storage
        self._handlers: Dict[type, Any] = {}

    def register(self, command_type: type, handler) -> None:
        if command_type in self._handlers:
            raise ValueError(f"Handler already registered for {command_type.__name__}")
        self._handlers[command_type] = handler

    def handler_for(self, command_type: type):
        try:
            return self._handlers[command_type]
        except KeyError:
            raise LookupError(f"No handler registered for {command_type.__name__}") from None

    def send(self, command, user_id: Optional[str] = None):
        name = type(command).__name__
        handler = self.handler_for(type(command))
        caller = user_id or getattr(command, "user_id", None) or "Anonymous"

        logger.info("Request: %s | User: %s %r", name, caller, command)
        started = time.perf_counter()
        try:
            response = handler.handle(command)
        except AppError as exc:
            self.storage.rollback()
            logger.warning(
                "Rejected: %s | User: %s | Duration: %dms | %s: %s",
                name, caller, _elapsed_ms(started), type(exc).__name__, exc.message,
            )
            raise
        except Exception:
            self.storage.rollback()
            logger.exception("Failure: %s | User: %s | Duration: %dms", name, caller, _elapsed_ms(started))
            raise

        logger.info("Handled: %s | User: %s | Duration: %dms", name, caller, _elapsed_ms(started))
        return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
