"""Global test fixtures for termlens."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from termlens.types.messages import ChatMessage, ChatRequest, Role


@pytest.fixture
def user_request() -> ChatRequest:
    return ChatRequest(messages=[
        ChatMessage(Role.SYSTEM, "be brief"),
        ChatMessage(Role.USER, "why did make fail?"),
    ])


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by ``handler``."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build
