"""Optional Langfuse tracing for relay calls."""

import logging
from typing import Any, Optional

from langfuse import Langfuse

from chat_relay.config import Settings

logger = logging.getLogger(__name__)


def get_langfuse(settings: Settings) -> Optional[Langfuse]:
    """Return a Langfuse client when all three LANGFUSE_* values are set."""
    if not settings.tracing_configured:
        return None
    return Langfuse(
        secret_key=settings.langfuse_secret_key,
        public_key=settings.langfuse_public_key,
        host=settings.langfuse_host,
    )


class RelayTrace:
    """
    One trace per relayed message with a single generation span.

    A tracing outage is logged as a warning and otherwise ignored; it never
    changes what the caller receives.
    """

    def __init__(self, settings: Settings, message: str):
        self.langfuse = None
        self.trace = None
        self.span = None
        try:
            self.langfuse = get_langfuse(settings)
            if self.langfuse is None:
                return
            self.trace = self.langfuse.trace(name="chat-with-ai", input={"message": message})
            self.span = self.trace.span(name="generation", input={"message": message})
        except Exception as e:
            self.trace = None
            logger.warning("Langfuse trace could not be started: %s", e)
            self._shutdown()

    @property
    def enabled(self) -> bool:
        return self.trace is not None

    def succeed(self, text: str) -> None:
        self._finish(output={"response": text})

    def fail(self, error: Exception) -> None:
        self._finish(output={"error": str(error)}, level="ERROR", status_message=str(error))

    def _finish(self, output: Any, level: Optional[str] = None, status_message: Optional[str] = None) -> None:
        if not self.enabled:
            return
        try:
            if level:
                self.span.end(output=output, level=level, status_message=status_message)
                self.trace.update(output=output, level=level)
            else:
                self.span.end(output=output)
                self.trace.update(output=output)
        except Exception as e:
            logger.warning("Langfuse trace could not be recorded: %s", e)
        finally:
            self._shutdown()

    def _shutdown(self) -> None:
        # The client is per request; shutdown() flushes and stops its worker threads.
        if self.langfuse is None:
            return
        langfuse, self.langfuse = self.langfuse, None
        try:
            langfuse.shutdown()
        except Exception as e:
            logger.warning("Langfuse client could not be shut down: %s", e)
