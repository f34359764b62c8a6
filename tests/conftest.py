"""
Pytest configuration and shared fixtures.
"""

import pytest
from fakes import SleepRecorder

from ai_gateway.config import RetryConfig
from ai_gateway.providers.base import ChatRequest, Message, Role
from ai_gateway.providers.retry import RetryPolicy


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def retry_policy(sleep_recorder):
    """Default backoff (3 retries, 1s initial, x2, 10s cap) with recorded sleeps."""
    return RetryPolicy(RetryConfig(), sleep=sleep_recorder)


@pytest.fixture
def summarize_request():
    return ChatRequest(
        messages=(Message(Role.USER, "Summarize: A B C"),),
        system_prompt="You are a concise assistant.",
        model="m",
        max_output_tokens=100,
        temperature=0.5,
        caller_id="user-1",
    )
