"""Forum REST API adapter: builds requests and decodes responses into DTOs."""

import logging
from typing import Any, Optional

from src.adapters.forum_adapter import ForumAdapter
from src.adapters.request_executor import RequestExecutor
from src.core.exceptions import DecodingError
from src.core.types import (
    AuthResultDTO,
    CommentDTO,
    PostDetailsDTO,
    PostDTO,
    PostPage,
    RequestDescriptor,
    TopicDTO,
    UserDTO,
)

logger = logging.getLogger("forumclient")


class RestForumAdapter(ForumAdapter):
    """Talks to the forum's JSON API through a RequestExecutor.

    Every response is decoded here, so callers only ever see DTOs.
    A payload of the wrong shape raises DecodingError.
    """

    def __init__(self, executor: RequestExecutor):
        self._executor = executor

    # --- auth ---

    def signup(self, username: str, password: str) -> AuthResultDTO:
        data = self._executor.execute(RequestDescriptor(
            "POST", "/auth/signup",
            body={"username": username, "password": password},
        ))
        return self._parse_auth_result(data)

    def login(self, username: str, password: str) -> AuthResultDTO:
        data = self._executor.execute(RequestDescriptor(
            "POST", "/auth/login",
            body={"username": username, "password": password},
        ))
        return self._parse_auth_result(data)

    def logout(self) -> str:
        data = self._executor.execute(RequestDescriptor("POST", "/auth/logout"))
        if isinstance(data, dict):
            return str(data.get("message", ""))
        return ""

    def get_profile(self) -> UserDTO:
        data = self._executor.execute(RequestDescriptor("GET", "/api/profile"))
        return self._parse_user(data)

    # --- topics ---

    def get_topics(self) -> list[TopicDTO]:
        data = self._executor.execute(RequestDescriptor("GET", "/topics"))
        return [self._parse_topic(item) for item in self._require_list(data, "topic list")]

    def create_topic(self, name: str, description: str = "") -> TopicDTO:
        data = self._executor.execute(RequestDescriptor(
            "POST", "/api/topics",
            body={"name": name, "description": description},
        ))
        return self._parse_topic(data)

    # --- posts ---

    def get_topic_posts(
        self,
        topic_id: str,
        cursor: str = "",
        search: Optional[str] = None,
    ) -> PostPage:
        query = {"cursor": cursor}
        if search:
            query["search"] = search
        data = self._executor.execute(RequestDescriptor(
            "GET", "/topics/{topic_id}/posts",
            path_params={"topic_id": topic_id},
            query=query,
        ))
        return self._parse_page(data)

    def create_post(self, topic_id: str, title: str, content: str = "") -> PostDTO:
        data = self._executor.execute(RequestDescriptor(
            "POST", "/api/posts",
            body={"title": title, "content": content, "topic_id": topic_id},
        ))
        return self._parse_post(data)

    def delete_post(self, post_id: str) -> None:
        self._executor.execute(RequestDescriptor(
            "DELETE", "/api/posts/{post_id}",
            path_params={"post_id": post_id},
        ))

    def get_post_details(self, post_id: str) -> PostDetailsDTO:
        data = self._executor.execute(RequestDescriptor(
            "GET", "/posts/{post_id}",
            path_params={"post_id": post_id},
        ))
        data = self._require_dict(data, "post details")
        post = self._parse_post(data.get("post"))
        raw_comments = data.get("comments") or []
        comments = tuple(
            self._parse_comment(item)
            for item in self._require_list(raw_comments, "comment list")
        )
        return PostDetailsDTO(post=post, comments=comments)

    # --- comments ---

    def create_comment(
        self,
        post_id: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> CommentDTO:
        body = {"content": content, "post_id": post_id}
        if parent_id is not None:
            body["parent_id"] = parent_id
        data = self._executor.execute(RequestDescriptor("POST", "/api/comments", body=body))
        return self._parse_comment(data)

    def delete_comment(self, comment_id: str) -> None:
        self._executor.execute(RequestDescriptor(
            "DELETE", "/api/comments/{comment_id}",
            path_params={"comment_id": comment_id},
        ))

    # --- decoding ---

    @staticmethod
    def _require_dict(data: Any, what: str) -> dict:
        if not isinstance(data, dict):
            raise DecodingError(f"Expected an object for {what}, got {type(data).__name__}")
        return data

    @staticmethod
    def _require_list(data: Any, what: str) -> list:
        if not isinstance(data, list):
            raise DecodingError(f"Expected an array for {what}, got {type(data).__name__}")
        return data

    @staticmethod
    def _require_id(data: dict, key: str, what: str) -> str:
        value = data.get(key)
        if value is None or value == "":
            raise DecodingError(f"{what} is missing '{key}'")
        return str(value)

    @staticmethod
    def _optional_id(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def _parse_user(cls, data: Any) -> UserDTO:
        d = cls._require_dict(data, "user")
        return UserDTO(
            id=cls._require_id(d, "id", "user"),
            username=str(d.get("username", "")),
            email=d.get("email"),
            created_at=str(d.get("created_at", "")),
        )

    @classmethod
    def _parse_auth_result(cls, data: Any) -> AuthResultDTO:
        """Normalize `User | {message, user}` into one shape."""
        d = cls._require_dict(data, "auth response")
        if isinstance(d.get("user"), dict):
            return AuthResultDTO(
                user=cls._parse_user(d["user"]),
                message=str(d.get("message", "")),
            )
        return AuthResultDTO(user=cls._parse_user(d))

    @classmethod
    def _parse_topic(cls, data: Any) -> TopicDTO:
        d = cls._require_dict(data, "topic")
        return TopicDTO(
            id=cls._require_id(d, "id", "topic"),
            name=str(d.get("name", "")),
            description=str(d.get("description") or ""),
            created_at=str(d.get("created_at", "")),
        )

    @classmethod
    def _parse_post(cls, data: Any) -> PostDTO:
        d = cls._require_dict(data, "post")
        try:
            comment_count = int(d.get("comment_count") or 0)
        except (TypeError, ValueError):
            raise DecodingError(f"Invalid comment_count: {d.get('comment_count')!r}")
        return PostDTO(
            id=cls._require_id(d, "id", "post"),
            title=str(d.get("title", "")),
            content=str(d.get("content") or ""),
            user_id=str(d.get("user_id", "")),
            topic_id=str(d.get("topic_id", "")),
            created_at=str(d.get("created_at", "")),
            username=str(d.get("username") or "[deleted]"),
            comment_count=comment_count,
        )

    @classmethod
    def _parse_page(cls, data: Any) -> PostPage:
        """Decode a `{data|records, next_cursor}` page envelope."""
        d = cls._require_dict(data, "post page")
        records = d.get("data") if "data" in d else d.get("records")
        posts = tuple(
            cls._parse_post(item)
            for item in cls._require_list(records or [], "post list")
        )
        # An empty cursor means there is nothing after this page
        next_cursor = d.get("next_cursor")
        next_cursor = str(next_cursor) if next_cursor not in (None, "") else None
        return PostPage(posts=posts, next_cursor=next_cursor)

    @classmethod
    def _parse_comment(cls, data: Any) -> CommentDTO:
        """Recursively parse a comment, including any pre-nested children."""
        d = cls._require_dict(data, "comment")
        children = tuple(
            cls._parse_comment(child)
            for child in cls._require_list(d.get("children") or [], "comment children")
        )
        return CommentDTO(
            id=cls._require_id(d, "id", "comment"),
            content=str(d.get("content") or ""),
            user_id=str(d.get("user_id", "")),
            post_id=str(d.get("post_id", "")),
            parent_id=cls._optional_id(d.get("parent_id")),
            created_at=str(d.get("created_at", "")),
            username=str(d.get("username") or "[deleted]"),
            children=children,
        )
