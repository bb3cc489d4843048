"""Abstract base class for forum API access."""

from abc import ABC, abstractmethod
from typing import Optional

from src.core.types import (
    AuthResultDTO,
    CommentDTO,
    PostDetailsDTO,
    PostDTO,
    PostPage,
    TopicDTO,
    UserDTO,
)


class ForumAdapter(ABC):
    """Abstract interface for talking to the forum backend.

    All methods raise ApiError subclasses on failure (see
    src.core.exceptions); decoding problems raise DecodingError.
    """

    @abstractmethod
    def signup(self, username: str, password: str) -> AuthResultDTO:
        ...

    @abstractmethod
    def login(self, username: str, password: str) -> AuthResultDTO:
        ...

    @abstractmethod
    def logout(self) -> str:
        """End the session. Returns the server's message."""
        ...

    @abstractmethod
    def get_profile(self) -> UserDTO:
        ...

    @abstractmethod
    def get_topics(self) -> list[TopicDTO]:
        ...

    @abstractmethod
    def create_topic(self, name: str, description: str = "") -> TopicDTO:
        ...

    @abstractmethod
    def get_topic_posts(
        self,
        topic_id: str,
        cursor: str = "",
        search: Optional[str] = None,
    ) -> PostPage:
        """Fetch one page of posts in a topic.

        Args:
            topic_id: Topic ID
            cursor: Opaque cursor from a previous page ("" = first page)
            search: Optional free-text filter

        Returns:
            PostPage; next_cursor is None on the last page
        """
        ...

    @abstractmethod
    def create_post(self, topic_id: str, title: str, content: str = "") -> PostDTO:
        ...

    @abstractmethod
    def delete_post(self, post_id: str) -> None:
        ...

    @abstractmethod
    def get_post_details(self, post_id: str) -> PostDetailsDTO:
        """Fetch a post with its comments (flat or partially nested)."""
        ...

    @abstractmethod
    def create_comment(
        self,
        post_id: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> CommentDTO:
        ...

    @abstractmethod
    def delete_comment(self, comment_id: str) -> None:
        ...
