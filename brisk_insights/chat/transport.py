"""
Chat Transport Client

Sends the conversation to the assistant endpoint and exposes the
response body as a stream of byte chunks.

DESIGN DECISION: One request, no retries. A failed or expired call
surfaces immediately to the caller, who turns it into a message in the
conversation. Retrying a half-streamed reply would show the user the
same words twice.

Request body: {"messages": [...], "context": {...}}. The context is the
user's financial snapshot. It is optional: when it cannot be built the
request goes out with the messages alone.

The deadline covers the whole exchange (context, connect, headers AND
every chunk). It is enforced per await against a single wall-clock deadline,
because a timeout context cannot span the yields of an async generator.
"""

import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx
import structlog

from brisk_insights.chat.errors import (
    NetworkError,
    RequestTimeoutError,
    ServerError,
)
from brisk_insights.config import get_settings


logger = structlog.get_logger(__name__)


def extract_error_message(body: bytes) -> Optional[str]:
    """
    Best-effort extraction of a server error message.

    Looks for an "error" or "message" string in a JSON object body.
    Returns None when the body is not such an object.
    """
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    for key in ("error", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class ChatTransport:
    """
    Authenticated streaming client for the assistant endpoint.

    The session is read on every call, so a token refreshed between two
    requests is picked up without rebuilding the transport. It must
    provide require_token(), raising AuthenticationError when signed out.
    """

    def __init__(
        self,
        session,
        endpoint_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        api_key: Optional[str] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        context_provider: Optional[Callable[[], Awaitable[dict]]] = None,
    ):
        """
        Args:
            session: SessionContext holding the current credential
            endpoint_url: Chat endpoint. Resolved from settings if None
            timeout_seconds: Deadline for one request. From settings if None
            api_key: Public backend key sent as the apikey header, if any
            client_factory: Builds the HTTP client for one request.
                            A fresh client per request keeps every call
                            bound to the event loop it runs on.
            context_provider: Async callable returning the financial
                              snapshot sent with each request
        """
        self._session = session
        self._endpoint_url = endpoint_url
        self._timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._client_factory = client_factory
        self._context_provider = context_provider

    @property
    def endpoint_url(self) -> str:
        if self._endpoint_url is None:
            self._endpoint_url = get_settings().assistant_endpoint()
        return self._endpoint_url

    @property
    def timeout_seconds(self) -> float:
        if self._timeout_seconds is None:
            self._timeout_seconds = get_settings().assistant.timeout_seconds
        return self._timeout_seconds

    def _build_client(self) -> httpx.AsyncClient:
        if self._client_factory is not None:
            return self._client_factory()
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))

    def _headers(self, token: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "text/event-stream, application/json",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
        return headers

    async def _load_context(self) -> Optional[dict]:
        if self._context_provider is None:
            return None
        try:
            return await self._context_provider()
        except Exception as e:
            logger.warning("chat_context_unavailable", error=str(e))
            return None

    async def stream(self, history: list[dict]) -> AsyncIterator[bytes]:
        """
        Send the conversation and yield response body chunks as they arrive.

        Args:
            history: Wire turns, oldest first, ending with the new user turn

        Yields:
            Non-empty raw body chunks in arrival order

        Raises:
            AuthenticationError: No credential. Nothing is sent
            RequestTimeoutError: The deadline expired at any stage
            NetworkError: Connection failed or the stream broke
            ServerError: Non-success status
        """
        if not history:
            raise ValueError("history must contain at least the new user turn")

        token = self._session.require_token()

        timeout = self.timeout_seconds
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        def remaining() -> float:
            left = deadline - loop.time()
            if left <= 0:
                raise RequestTimeoutError(timeout)
            return left

        payload: dict = {"messages": history}
        try:
            context = await asyncio.wait_for(self._load_context(), remaining())
        except asyncio.TimeoutError:
            raise RequestTimeoutError(timeout)
        if context is not None:
            payload["context"] = context

        client = self._build_client()
        try:
            request = client.build_request(
                "POST",
                self.endpoint_url,
                json=payload,
                headers=self._headers(token),
            )
            logger.debug(
                "chat_request_sent",
                endpoint=self.endpoint_url,
                turns=len(history),
            )

            try:
                response = await asyncio.wait_for(
                    client.send(request, stream=True), remaining()
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                raise RequestTimeoutError(timeout)
            except httpx.RequestError as e:
                raise NetworkError(f"Chat request failed: {e}")

            try:
                if not response.is_success:
                    body = await asyncio.wait_for(response.aread(), remaining())
                    message = extract_error_message(body)
                    logger.warning(
                        "chat_request_rejected",
                        status=response.status_code,
                        message=message,
                    )
                    raise ServerError(response.status_code, message)

                chunks = response.aiter_bytes()
                while True:
                    try:
                        chunk = await asyncio.wait_for(anext(chunks), remaining())
                    except StopAsyncIteration:
                        break
                    if chunk:
                        yield chunk
            except (asyncio.TimeoutError, httpx.TimeoutException):
                raise RequestTimeoutError(timeout)
            except (httpx.RequestError, httpx.StreamError) as e:
                raise NetworkError(f"Chat stream interrupted: {e}")
            finally:
                await response.aclose()
        finally:
            await client.aclose()
