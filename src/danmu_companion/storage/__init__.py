"""Storage module - Per-page chat config table."""

from .config_store import (
    ChatConfig,
    close_store,
    create_config,
    delete_config,
    ensure_defaults,
    get_active_config,
    get_config,
    init_store,
    list_configs,
    update_config,
)

__all__ = [
    "ChatConfig", "init_store", "close_store", "ensure_defaults",
    "list_configs", "get_config", "get_active_config",
    "create_config", "update_config", "delete_config",
]
