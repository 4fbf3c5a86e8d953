"""Langfuse integration for healing-loop observability."""

from contextlib import contextmanager
from typing import Any

from langfuse import Langfuse

from .config import Config


class TracingClient:
    """Langfuse tracing client. Every method is a no-op when tracing is disabled."""

    def __init__(self, config: Config):
        self.config = config
        self.enabled = config.langfuse.enabled
        self._client: Langfuse | None = None

        if self.enabled:
            self._client = Langfuse(
                public_key=config.langfuse.public_key,
                secret_key=config.langfuse.secret_key,
                host=config.langfuse.host,
            )

    @contextmanager
    def trace(self, name: str, metadata: dict | None = None):
        """Root span for one operation, e.g. a healing session."""
        if not self.enabled or not self._client:
            yield None
            return

        with self._client.start_as_current_span(name=name, metadata=metadata or {}) as span:
            yield span

    @contextmanager
    def span(self, name: str, input_data: Any = None, metadata: dict | None = None):
        """Child span under the current trace. Set the output with ``span.update(output=...)``."""
        if not self.enabled or not self._client:
            yield None
            return

        with self._client.start_as_current_span(
            name=name, input=input_data, metadata=metadata or {}
        ) as span:
            yield span

    def flush(self) -> None:
        if self._client:
            self._client.flush()
