"""Tests for DTOs: RequestDescriptor, RetryPolicy, RetryState, PostThread."""

import dataclasses

import pytest

from src.core.comment_tree import count_nodes
from src.core.types import (
    CommentDTO,
    CommentNode,
    PostDTO,
    PostThread,
    RequestDescriptor,
    RetryPolicy,
    RetryState,
)


class TestRequestDescriptor:
    def test_is_immutable(self):
        descriptor = RequestDescriptor("GET", "/topics")
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.method = "POST"

    def test_path_substitution_quotes_values(self):
        descriptor = RequestDescriptor("GET", "/posts/{post_id}", path_params={"post_id": "a/b"})
        assert descriptor.url_path == "/posts/a%2Fb"

    @pytest.mark.parametrize("method,expected", [
        ("GET", True), ("DELETE", True), ("PUT", True), ("POST", False), ("PATCH", False),
    ])
    def test_idempotency_by_method(self, method, expected):
        assert RequestDescriptor(method, "/x").is_idempotent is expected

    def test_explicit_idempotency_wins(self):
        assert RequestDescriptor("POST", "/x", idempotent=True).is_idempotent


class TestRetryPolicy:
    def test_backoff_doubles_from_one_second(self):
        policy = RetryPolicy(max_delay=None)
        assert [policy.get_backoff_time(k) for k in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_backoff_cap(self):
        policy = RetryPolicy()
        assert policy.get_backoff_time(5) == 16.0
        assert policy.get_backoff_time(6) == 30.0
        assert policy.get_backoff_time(10) == 30.0

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 10
        assert policy.retryable_statuses == frozenset({408, 500, 503})
        assert policy.rate_limit_default_wait == 60.0


class TestRetryState:
    def test_starts_at_zero(self):
        state = RetryState(max_retries=3)
        assert state.attempt == 0
        assert not state.exhausted
        assert not state.rate_limit_retried

    def test_next_attempt_returns_new_state(self):
        state = RetryState(max_retries=3)
        nxt = state.next_attempt()
        assert nxt.attempt == 1
        assert state.attempt == 0

    def test_never_exceeds_max(self):
        state = RetryState(max_retries=2).next_attempt().next_attempt()
        assert state.exhausted
        with pytest.raises(ValueError):
            state.next_attempt()

    def test_after_rate_limit_keeps_attempt(self):
        state = RetryState(max_retries=2).next_attempt().after_rate_limit()
        assert state.rate_limit_retried
        assert state.attempt == 1


class TestPostThread:
    def test_nested_replies_are_counted(self):
        leaf = CommentNode(comment=CommentDTO(id="3", parent_id="2"), depth=2)
        mid = CommentNode(comment=CommentDTO(id="2", parent_id="1"), children=(leaf,), depth=1)
        root = CommentNode(comment=CommentDTO(id="1"), children=(mid,))
        thread = PostThread(post=PostDTO(id="p", title="t"), comments=(root,))
        assert count_nodes(thread.comments) == 3
