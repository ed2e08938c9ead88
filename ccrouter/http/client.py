"""HTTP transport to the upstream OpenAI-compatible endpoint."""

from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from ccrouter.config.settings import Settings
from ccrouter.core.errors import UpstreamError
from ccrouter.llms.streaming.translator import StreamTranslator, translate


logger = structlog.get_logger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"


def create_http_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx client configured for long-lived streaming responses.

    Args:
        settings: Application settings providing base URL, key and timeouts
        transport: Optional transport override (used by tests)
        **kwargs: Additional httpx.AsyncClient arguments

    Returns:
        Configured httpx.AsyncClient instance
    """
    upstream = settings.upstream
    timeout = httpx.Timeout(
        connect=upstream.connect_timeout,
        read=upstream.timeout,
        write=30.0,
        pool=30.0,
    )

    headers = {"accept": "text/event-stream"}
    if upstream.api_key is not None:
        headers["authorization"] = f"Bearer {upstream.api_key.get_secret_value()}"
    headers.update(kwargs.pop("headers", {}))

    logger.debug(
        "http_client_created",
        base_url=upstream.base_url,
        read_timeout=upstream.timeout,
        authenticated=upstream.api_key is not None,
    )
    return httpx.AsyncClient(
        base_url=upstream.base_url,
        timeout=timeout,
        headers=headers,
        transport=transport,
        **kwargs,
    )


def prepare_streaming_request(request: dict[str, Any]) -> dict[str, Any]:
    """Force streaming with usage reporting on a chat completion request."""
    body = dict(request)
    body["stream"] = True
    stream_options = dict(body.get("stream_options") or {})
    stream_options["include_usage"] = True
    body["stream_options"] = stream_options
    return body


class UpstreamClient:
    """Streams chat completions upstream and yields Anthropic SSE frames."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self.http_client = http_client or create_http_client(settings)

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def stream_messages(
        self,
        request: dict[str, Any],
        model: str | None = None,
        *,
        translator: StreamTranslator | None = None,
    ) -> AsyncIterator[bytes]:
        """Send a chat completion request and yield translated frames.

        Args:
            request: OpenAI chat completion request body
            model: Model echoed into message_start (defaults to the request's)
            translator: Optional pre-built translator, to read stats afterwards

        Raises:
            UpstreamError: If the upstream answers with a non-2xx status
            httpx.HTTPError: On transport failures
        """
        body = prepare_streaming_request(request)
        echoed_model = model if model is not None else str(body.get("model", ""))
        translator = translator or StreamTranslator(
            echoed_model, settings=self.settings.translator
        )

        logger.info(
            "upstream_request_started",
            model=body.get("model"),
            message_id=translator.message_id,
        )
        async with self.http_client.stream(
            "POST", CHAT_COMPLETIONS_PATH, json=body
        ) as response:
            if response.status_code >= 400:
                error_body = (await response.aread()).decode("utf-8", errors="replace")
                logger.warning(
                    "upstream_request_failed",
                    status_code=response.status_code,
                    body_preview=error_body[:200],
                )
                raise UpstreamError(response.status_code, error_body)

            async for frame in translate(
                response.aiter_bytes(), echoed_model, translator=translator
            ):
                yield frame

        logger.info(
            "upstream_request_completed",
            message_id=translator.message_id,
            records=translator.stats.records,
            skipped_records=translator.stats.skipped_records,
        )
