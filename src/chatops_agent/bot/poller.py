"""Long-polling loop that hands each inbound message to its own worker thread."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Protocol

from chatops_agent.bot.handler import HandleOutcome, MessageHandler
from chatops_agent.bot.transport import ChatTransportError, IncomingMessage, parse_update

logger = logging.getLogger(__name__)


class UpdateSource(Protocol):
    def get_updates(self, offset: int) -> list[dict[str, Any]]:
        """Return pending updates starting at `offset`."""

    def delete_webhook(self, *, drop_pending_updates: bool = True) -> None:
        """Switch the bot to polling mode."""


class BotPoller:
    """Poll for updates and dispatch messages until a stop is requested."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        source: UpdateSource,
        handler: MessageHandler,
        max_workers: int = 4,
        drop_pending_updates: bool = True,
        error_backoff_seconds: float = 5.0,
    ) -> None:
        self._source = source
        self._handler = handler
        self._max_workers = max_workers
        self._drop_pending_updates = drop_pending_updates
        self._error_backoff_seconds = error_backoff_seconds
        self._stop = threading.Event()
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    def request_stop(self) -> None:
        self._stop.set()

    def run_forever(self) -> None:
        """Poll until SIGINT/SIGTERM or `request_stop`, then drain in-flight messages."""

        try:
            self._source.delete_webhook(drop_pending_updates=self._drop_pending_updates)
        except ChatTransportError as error:
            logger.warning("deleteWebhook failed: %s", error)

        logger.info("Polling for chat messages")
        with (
            self._signal_handlers(),
            ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="chatops-message",
            ) as pool,
        ):
            while not self._stop.is_set():
                try:
                    self.poll_once(pool)
                except ChatTransportError as error:
                    logger.warning(
                        "Polling failed, retrying in %.1fs: %s",
                        self._error_backoff_seconds,
                        error,
                    )
                    self._stop.wait(timeout=self._error_backoff_seconds)
            logger.info("Stop requested; waiting for in-flight messages")
        logger.info("Poller stopped")

    def poll_once(self, pool: ThreadPoolExecutor) -> list[Future[HandleOutcome | None]]:
        """Fetch one batch of updates and submit each message to `pool`."""

        futures: list[Future[HandleOutcome | None]] = []
        for update in self._source.get_updates(self._offset):
            update_id = update.get("update_id")
            if isinstance(update_id, int) and not isinstance(update_id, bool):
                self._offset = max(self._offset, update_id + 1)
            message = parse_update(update)
            if message is None:
                logger.warning("Unhandled update kind: %s", sorted(update))
                continue
            futures.append(pool.submit(self._handle_safely, message))
        return futures

    def _handle_safely(self, message: IncomingMessage) -> HandleOutcome | None:
        try:
            return self._handler.handle(message)
        except Exception:
            logger.exception("Message handling failed for chat_id=%s", message.chat_id)
            return None

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            logger.info("Received %s, stopping", name)
            self.request_stop()

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return

        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
