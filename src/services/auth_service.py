"""Auth service: keeps track of the logged-in user."""

import logging
from typing import Optional

from src.adapters.forum_adapter import ForumAdapter
from src.core.exceptions import ForumClientError
from src.core.types import AuthResultDTO, UserDTO

logger = logging.getLogger("forumclient")


class AuthService:
    """Signup, login and logout on top of ForumAdapter.

    The session cookie lives in the HTTP transport; this service only
    remembers who the current user is.
    """

    def __init__(self, forum: ForumAdapter):
        self._forum = forum
        self._user: Optional[UserDTO] = None
        self._restored = False

    @property
    def current_user(self) -> Optional[UserDTO]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def restore_session(self) -> Optional[UserDTO]:
        """Look up the profile for an existing session. Runs once.

        A failed lookup means "not logged in" rather than an error.
        """
        if self._restored:
            return self._user
        try:
            self._user = self._forum.get_profile()
        except ForumClientError as e:
            logger.info(f"No active session: {e}")
            self._user = None
        self._restored = True
        return self._user

    def signup(self, username: str, password: str) -> AuthResultDTO:
        result = self._forum.signup(username, password)
        self._user = result.user
        logger.info(f"Signed up as {result.user.username}")
        return result

    def login(self, username: str, password: str) -> AuthResultDTO:
        result = self._forum.login(username, password)
        self._user = result.user
        logger.info(f"Logged in as {result.user.username}")
        return result

    def logout(self) -> str:
        message = self._forum.logout()
        self._user = None
        logger.info("Logged out")
        return message
