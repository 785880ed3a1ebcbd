"""LLM Observability with Langfuse.

This module provides integration with Langfuse for tracing workflow runs and
the model generations the gateway performs. Tracing is best effort: a tracing
failure is logged and never affects the call being traced.
"""

from typing import Any

from langfuse import Langfuse

from .logging import get_logger

logger = get_logger(__name__)


class LangfuseClient:
    """Wrapper for the Langfuse client with graceful degradation.

    Observations are tracked by caller-chosen ids so start and end can happen
    in different places. When disabled every method is a no-op.
    """

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "https://cloud.langfuse.com",
        enabled: bool = True,
    ):
        """Initialize the Langfuse client.

        Args:
            public_key: Langfuse public key
            secret_key: Langfuse secret key
            host: Langfuse host URL
            enabled: Whether to enable Langfuse tracking
        """
        self.enabled = enabled
        self._client: Any = None
        self._spans: dict[str, Any] = {}
        self._generations: dict[str, Any] = {}

        if self.enabled and public_key and secret_key:
            try:
                self._client = Langfuse(
                    public_key=public_key,
                    secret_key=secret_key,
                    host=host,
                )
                logger.info("Langfuse client initialized", host=host)
            except Exception as e:
                logger.warning("Failed to initialize Langfuse client", error=str(e))
                self.enabled = False
        elif enabled:
            logger.debug("Langfuse credentials not provided, tracking disabled")
            self.enabled = False

    @classmethod
    def disabled(cls) -> "LangfuseClient":
        """Return a client that records nothing."""
        return cls(enabled=False)

    @property
    def active(self) -> bool:
        return self.enabled and self._client is not None

    def start_span(
        self,
        span_id: str,
        name: str,
        input_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Start a span, e.g. for one workflow run.

        Args:
            span_id: Unique identifier used to end the span later
            name: Name of the span
            input_data: Input data for this span
            metadata: Optional metadata

        Returns:
            The span ID if successful, None otherwise
        """
        if not self.active:
            return None

        try:
            span = self._client.start_span(
                name=name,
                input=input_data,
                metadata=metadata or {},
            )
            self._spans[span_id] = span
            logger.debug("Started span", span_id=span_id, name=name)
            return span_id
        except Exception as e:
            logger.warning("Failed to start span", error=str(e), span_id=span_id)
            return None

    def end_span(
        self,
        span_id: str,
        output: dict[str, Any] | None = None,
        status: str = "success",
        level: str = "DEFAULT",
    ) -> None:
        """End a span and record the output.

        Args:
            span_id: The span ID to end
            output: Output data from this span
            status: Status of the span (success, error)
            level: Observation level (DEBUG, DEFAULT, WARNING, ERROR)
        """
        span = self._spans.pop(span_id, None)
        if not self.active or span is None:
            return

        try:
            span.update(output=output, level=level, metadata={"status": status})
            span.end()
            logger.debug("Ended span", span_id=span_id, status=status)
        except Exception as e:
            logger.warning("Failed to end span", error=str(e), span_id=span_id)

    def start_generation(
        self,
        generation_id: str,
        name: str,
        model: str,
        input_messages: list[dict[str, Any]],
        model_parameters: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Start a model generation observation.

        Args:
            generation_id: Unique identifier used to end the generation later
            name: Name of the generation (the provider key)
            model: Model name
            input_messages: Messages sent to the model
            model_parameters: Optional parameters (temperature, max_tokens)
            metadata: Optional additional metadata

        Returns:
            The generation ID if successful, None otherwise
        """
        if not self.active:
            return None

        try:
            generation = self._client.start_generation(
                name=name,
                model=model,
                input=input_messages,
                model_parameters=model_parameters or {},
                metadata=metadata or {},
            )
            self._generations[generation_id] = generation
            return generation_id
        except Exception as e:
            logger.warning(
                "Failed to start generation", error=str(e), generation_id=generation_id
            )
            return None

    def end_generation(
        self,
        generation_id: str,
        output: str | None = None,
        usage: dict[str, int] | None = None,
        error: str | None = None,
    ) -> None:
        """End a generation with its output or error."""
        generation = self._generations.pop(generation_id, None)
        if not self.active or generation is None:
            return

        try:
            if error is not None:
                generation.update(level="ERROR", status_message=error)
            else:
                generation.update(output=output, usage_details=usage or None)
            generation.end()
        except Exception as e:
            logger.warning(
                "Failed to end generation", error=str(e), generation_id=generation_id
            )

    def flush(self) -> None:
        """Flush any pending events to Langfuse."""
        if self.active:
            try:
                self._client.flush()
                logger.debug("Flushed Langfuse events")
            except Exception as e:
                logger.warning("Failed to flush Langfuse events", error=str(e))

    def shutdown(self) -> None:
        """Shutdown the Langfuse client."""
        if self.active:
            try:
                self._client.shutdown()
                logger.info("Langfuse client shutdown")
            except Exception as e:
                logger.warning("Failed to shutdown Langfuse client", error=str(e))
            self._client = None
