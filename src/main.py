"""Forum client composition root."""

from dataclasses import dataclass
from typing import Optional

from src.core.config_manager import ConfigManager
from src.core.logger import setup_logger
from src.adapters.request_executor import RequestExecutor
from src.adapters.rest_adapter import RestForumAdapter
from src.services.auth_service import AuthService
from src.services.forum_service import ForumService


@dataclass
class ForumClient:
    """Everything a front end needs, wired together."""

    auth: AuthService
    forum: ForumService
    config: ConfigManager


def create_client(config: Optional[ConfigManager] = None) -> ForumClient:
    """Build the forum client.

    Startup sequence:
    1. ConfigManager init (loads or creates settings.yaml)
    2. Logger init (reads log_level from config)
    3. RequestExecutor (base URL, timeout, retry policy)
    4. RestForumAdapter over the executor
    5. Services (AuthService, ForumService)
    """
    # 1. ConfigManager
    config = config or ConfigManager()

    # 2. Logger
    logger = setup_logger(
        log_level=config.get("app.log_level", "INFO"),
        mask_logs=config.get("security.mask_logs", True),
    )
    logger.info("Forum client starting...")

    # 3. Executor
    executor = RequestExecutor(
        base_url=config.get("api.base_url", "http://localhost:8080"),
        timeout=config.get("api.timeout", 30),
        policy=config.get_retry_policy(),
    )

    # 4. Adapter
    adapter = RestForumAdapter(executor)

    # 5. Services
    client = ForumClient(
        auth=AuthService(adapter),
        forum=ForumService(adapter, orphan_policy=config.get_orphan_policy()),
        config=config,
    )
    logger.info(f"Forum client ready for {config.get('api.base_url')}")
    return client
