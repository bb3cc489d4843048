"""Data Transfer Objects for the forum client."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import quote

DELETED_SENTINEL = "[deleted]"

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


class FailureKind(str, Enum):
    """Classification of a failed request attempt."""

    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    NETWORK_UNAVAILABLE = "network_unavailable"


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call, immutable for its whole lifetime."""

    method: str
    path: str                                  # may contain {name} placeholders
    path_params: Mapping[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None                 # JSON-serializable
    query: Mapping[str, Any] = field(default_factory=dict)
    idempotent: Optional[bool] = None          # None = decided by method

    @property
    def is_idempotent(self) -> bool:
        if self.idempotent is not None:
            return self.idempotent
        return self.method.upper() in _IDEMPOTENT_METHODS

    @property
    def url_path(self) -> str:
        """Path with placeholders substituted and URL-quoted."""
        quoted = {k: quote(str(v), safe="") for k, v in self.path_params.items()}
        return self.path.format(**quoted)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and backoff settings for the request executor.

    max_retries counts retries, not attempts: max_retries=10 allows
    1 initial attempt + 10 retries.
    """

    max_retries: int = 10
    base_delay: float = 1.0                    # seconds
    multiplier: float = 2.0
    max_delay: Optional[float] = 30.0          # None = uncapped
    rate_limit_default_wait: float = 60.0      # seconds, when Retry-After is absent
    retryable_statuses: frozenset = frozenset({408, 500, 503})
    retry_non_idempotent: bool = True

    def get_backoff_time(self, attempt: int) -> float:
        """Wait before retry number `attempt` (1-based).

        E.g., 1s -> 2s -> 4s -> 8s, capped at max_delay.
        """
        delay = self.base_delay * (self.multiplier ** (attempt - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def allows_retry(self, descriptor: RequestDescriptor) -> bool:
        return self.retry_non_idempotent or descriptor.is_idempotent


@dataclass(frozen=True)
class RetryState:
    """Retry bookkeeping for a single logical call. Never shared."""

    max_retries: int
    attempt: int = 0                           # retries performed so far
    rate_limit_retried: bool = False

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_retries

    def next_attempt(self) -> "RetryState":
        if self.exhausted:
            raise ValueError(
                f"Retry budget of {self.max_retries} already used"
            )
        return replace(self, attempt=self.attempt + 1)

    def after_rate_limit(self) -> "RetryState":
        return replace(self, rate_limit_retried=True)


@dataclass(frozen=True)
class UserDTO:
    """Forum user data transfer object."""

    id: str
    username: str
    email: Optional[str] = None
    created_at: str = ""


@dataclass(frozen=True)
class AuthResultDTO:
    """Canonical result of signup/login, whatever shape the server sent."""

    user: UserDTO
    message: str = ""


@dataclass(frozen=True)
class TopicDTO:
    id: str
    name: str
    description: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class PostDTO:
    """Forum post data transfer object."""

    id: str
    title: str
    content: str = ""
    user_id: str = ""
    topic_id: str = ""
    created_at: str = ""
    username: str = DELETED_SENTINEL
    comment_count: int = 0


@dataclass(frozen=True)
class PostPage:
    """One page of a topic's post listing."""

    posts: tuple = ()                          # tuple[PostDTO, ...]
    next_cursor: Optional[str] = None          # None = no further pages

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class CommentDTO:
    """Comment record as fetched from the API.

    A deleted comment stays in place as a tombstone: its content is replaced
    by DELETED_SENTINEL and it can no longer be replied to.
    """

    id: str
    content: str = ""
    user_id: str = ""
    post_id: str = ""
    parent_id: Optional[str] = None            # None = top-level
    created_at: str = ""
    username: str = DELETED_SENTINEL
    children: tuple = ()                       # pre-nested records, if the source grouped them

    @property
    def is_deleted(self) -> bool:
        return self.content == DELETED_SENTINEL

    @property
    def can_reply(self) -> bool:
        return not self.is_deleted


@dataclass(frozen=True)
class CommentNode:
    """A comment plus its ordered replies."""

    comment: CommentDTO
    children: tuple = ()                       # tuple[CommentNode, ...]
    depth: int = 0                             # 0 = top-level

    @property
    def id(self) -> str:
        return self.comment.id

    @property
    def parent_id(self) -> Optional[str]:
        return self.comment.parent_id

    @property
    def is_deleted(self) -> bool:
        return self.comment.is_deleted

    @property
    def can_reply(self) -> bool:
        return self.comment.can_reply


@dataclass(frozen=True)
class PostDetailsDTO:
    """Post plus its comments exactly as the API returned them."""

    post: PostDTO
    comments: tuple = ()                       # tuple[CommentDTO, ...]


@dataclass(frozen=True)
class PostThread:
    """Post plus its comment forest, ready for display."""

    post: PostDTO
    comments: tuple = ()                       # tuple[CommentNode, ...]
