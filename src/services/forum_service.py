"""Forum service: fetch, mutate and re-fetch orchestration."""

import logging
from typing import Iterator, Optional

from src.adapters.forum_adapter import ForumAdapter
from src.core.comment_tree import (
    OrphanPolicy,
    append_reply,
    build_comment_tree,
    find_node,
    mark_deleted,
)
from src.core.exceptions import ForumClientError, ReplyNotAllowedError
from src.core.types import PostDTO, PostPage, PostThread, TopicDTO

logger = logging.getLogger("forumclient")


class ForumService:
    """Sequences API calls and comment-tree builds.

    Responsibilities:
    - Fetch topics and paged post listings via ForumAdapter
    - Build the comment forest for a post
    - After a comment is created or deleted, re-fetch and rebuild the forest
    - Fall back to a local, optimistic forest when that re-fetch fails

    Write failures always propagate to the caller.
    """

    def __init__(self, forum: ForumAdapter,
                 orphan_policy: OrphanPolicy = OrphanPolicy.PROMOTE):
        self._forum = forum
        self._orphan_policy = orphan_policy

    def fetch_topics(self) -> list[TopicDTO]:
        topics = self._forum.get_topics()
        logger.info(f"Fetched {len(topics)} topics")
        return topics

    def create_topic(self, name: str, description: str = "") -> TopicDTO:
        topic = self._forum.create_topic(name, description)
        logger.info(f"Created topic {topic.id}")
        return topic

    def fetch_topic_posts(self, topic_id: str, cursor: str = "",
                          search: Optional[str] = None) -> PostPage:
        """Fetch one page of posts.

        Args:
            topic_id: Topic ID
            cursor: Cursor from the previous page ("" = first page)
            search: Optional free-text filter

        Returns:
            PostPage

        Raises:
            ApiError: Any classified request failure
        """
        page = self._forum.get_topic_posts(topic_id, cursor, search)
        logger.info(f"Fetched {len(page.posts)} posts from topic {topic_id}")
        return page

    def iter_topic_posts(self, topic_id: str,
                         search: Optional[str] = None) -> Iterator[PostDTO]:
        """Yield every post in a topic, following cursors until the last page."""
        cursor = ""
        seen_cursors = set()
        while True:
            page = self.fetch_topic_posts(topic_id, cursor, search)
            yield from page.posts
            if not page.has_more or page.next_cursor in seen_cursors:
                return
            seen_cursors.add(page.next_cursor)
            cursor = page.next_cursor

    def create_post(self, topic_id: str, title: str, content: str = "") -> PostDTO:
        post = self._forum.create_post(topic_id, title, content)
        logger.info(f"Created post {post.id} in topic {topic_id}")
        return post

    def delete_post(self, post_id: str) -> None:
        self._forum.delete_post(post_id)
        logger.info(f"Deleted post {post_id}")

    def load_thread(self, post_id: str) -> PostThread:
        """Fetch a post and build its comment forest.

        Raises:
            ApiError: Any classified request failure
        """
        details = self._forum.get_post_details(post_id)
        forest = build_comment_tree(details.comments, self._orphan_policy)
        logger.info(f"Loaded post {post_id} with {len(details.comments)} top-level comment records")
        return PostThread(post=details.post, comments=forest)

    def reply(self, thread: PostThread, content: str,
              parent_id: Optional[str] = None) -> PostThread:
        """Create a comment (or a reply to `parent_id`) and refresh the thread.

        The created comment is shown optimistically if the refresh fails;
        the next successful load_thread() replaces that view.

        Raises:
            ReplyNotAllowedError: `parent_id` is a deleted comment in `thread`
            ApiError: The create call itself failed
        """
        if parent_id is not None:
            parent = find_node(thread.comments, parent_id)
            if parent is not None and not parent.can_reply:
                raise ReplyNotAllowedError(f"Comment {parent_id} is deleted and cannot be replied to")

        comment = self._forum.create_comment(thread.post.id, content, parent_id)
        logger.info(f"Created comment {comment.id} on post {thread.post.id}")

        try:
            return self.load_thread(thread.post.id)
        except ForumClientError as e:
            logger.warning(f"Refresh after reply failed: {e}. Showing local copy.")
            return PostThread(post=thread.post, comments=append_reply(thread.comments, comment))

    def delete_comment(self, thread: PostThread, comment_id: str) -> PostThread:
        """Delete a comment and refresh the thread.

        If the refresh fails, the comment is tombstoned locally so its
        replies stay visible.

        Raises:
            ApiError: The delete call itself failed
        """
        self._forum.delete_comment(comment_id)
        logger.info(f"Deleted comment {comment_id}")

        try:
            return self.load_thread(thread.post.id)
        except ForumClientError as e:
            logger.warning(f"Refresh after delete failed: {e}. Showing local copy.")
            return PostThread(post=thread.post, comments=mark_deleted(thread.comments, comment_id))
