"""Chat config store - one JSON config blob per page key."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from peewee import (
    BooleanField,
    CharField,
    DateTimeField,
    IntegrityError,
    Model,
    SqliteDatabase,
    TextField,
)

from ..config import DEFAULT_SYSTEM_PROMPT
from ..errors import ConfigNotFound, DuplicatePageKey, NothingToUpdate

logger = logging.getLogger(__name__)

db = SqliteDatabase(None)


class BaseModel(Model):
    class Meta:
        database = db


class ChatConfig(BaseModel):
    page_key = CharField(max_length=100, unique=True, index=True)
    page_name = CharField(max_length=200)
    config_data = TextField()  # JSON
    is_active = BooleanField(default=True, index=True)
    description = TextField(null=True)
    created_at = DateTimeField(default=datetime.now)
    updated_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = "chat_config"

    def save(self, *args, **kwargs):
        self.updated_at = datetime.now()
        return super().save(*args, **kwargs)

    def to_dict(self) -> dict:
        try:
            config_data = json.loads(self.config_data)
        except ValueError:
            config_data = {}
        return {
            "id": self.id,
            "page_key": self.page_key,
            "page_name": self.page_name,
            "config_data": config_data,
            "is_active": 1 if self.is_active else 0,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


DEFAULT_CONFIGS = [
    {
        "page_key": "chat",
        "page_name": "Chat bot page",
        "description": "Default chat page config",
        "config_data": {
            "tts": {
                "type": "browser",
                "autoPlay": True,
                "edgeOptions": {
                    "voice": "zh-CN-XiaoxiaoNeural",
                    "rate": "+0%",
                    "pitch": "+0Hz",
                },
                "thirdPartyOptions": {"provider": "baidu"},
            },
            "ai": {
                "model": "doubao-seed-1-6-251015",
                "temperature": 0.7,
                "maxTokens": 200,
                "systemPrompt": DEFAULT_SYSTEM_PROMPT,
            },
        },
    },
    {
        "page_key": "live-chat-bot",
        "page_name": "Live room chat bot",
        "description": "Live room chat bot config",
        "config_data": {
            "tts": {
                "type": "browser",
                "autoPlay": True,
                "voiceEnabled": True,
            },
            "ai": {
                "enabled": True,
                "model": "doubao-seed-1-6-251015",
                "temperature": 0.7,
                "maxTokens": 200,
            },
            "autoReply": {
                "enabled": False,
                "keywords": "",
                "message": "Thanks for the support!",
            },
        },
    },
]


def init_store(path: str) -> None:
    """Bind the store to a SQLite file (or ":memory:") and create the table."""
    db.init(path)
    db.connect(reuse_if_open=True)
    db.create_tables([ChatConfig])


def close_store() -> None:
    if not db.is_closed():
        db.close()


def ensure_defaults() -> int:
    """Insert the default page configs when the table is empty."""
    if ChatConfig.select().count() > 0:
        return 0
    with db.atomic():
        for entry in DEFAULT_CONFIGS:
            ChatConfig.create(
                page_key=entry["page_key"],
                page_name=entry["page_name"],
                config_data=json.dumps(entry["config_data"], ensure_ascii=False),
                description=entry["description"],
                is_active=True,
            )
    logger.info("Seeded %d default chat configs", len(DEFAULT_CONFIGS))
    return len(DEFAULT_CONFIGS)


def list_configs() -> list[dict]:
    query = ChatConfig.select().order_by(ChatConfig.created_at.desc(), ChatConfig.id.desc())
    return [row.to_dict() for row in query]


def _get_row(config_id: int) -> ChatConfig:
    row = ChatConfig.get_or_none(ChatConfig.id == config_id)
    if row is None:
        raise ConfigNotFound(f"config {config_id} does not exist")
    return row


def get_config(config_id: int) -> dict:
    return _get_row(config_id).to_dict()


def get_active_config(page_key: str) -> dict:
    row = ChatConfig.get_or_none(
        (ChatConfig.page_key == page_key) & (ChatConfig.is_active == True)  # noqa: E712
    )
    if row is None:
        raise ConfigNotFound(f"no active config for page {page_key!r}")
    return row.to_dict()


def create_config(
    page_key: str,
    page_name: str,
    config_data: Any,
    description: Optional[str] = None,
    is_active: bool = True,
) -> dict:
    if ChatConfig.select().where(ChatConfig.page_key == page_key).exists():
        raise DuplicatePageKey(f"page key {page_key!r} already exists")
    try:
        row = ChatConfig.create(
            page_key=page_key,
            page_name=page_name,
            config_data=json.dumps(config_data, ensure_ascii=False),
            description=description,
            is_active=bool(is_active),
        )
    except IntegrityError as e:
        raise DuplicatePageKey(f"page key {page_key!r} already exists") from e
    return row.to_dict()


_UPDATABLE = ("page_key", "page_name", "config_data", "description", "is_active")


def update_config(config_id: int, **fields: Any) -> dict:
    """Partially update a config row. Unknown or None-valued fields are ignored."""
    changes = {k: v for k, v in fields.items() if k in _UPDATABLE and v is not None}
    if not changes:
        raise NothingToUpdate("no fields to update")

    row = _get_row(config_id)

    new_key = changes.get("page_key")
    if new_key is not None and new_key != row.page_key:
        taken = ChatConfig.select().where(
            (ChatConfig.page_key == new_key) & (ChatConfig.id != config_id)
        ).exists()
        if taken:
            raise DuplicatePageKey(f"page key {new_key!r} is already used")

    if "config_data" in changes:
        changes["config_data"] = json.dumps(changes["config_data"], ensure_ascii=False)
    if "is_active" in changes:
        changes["is_active"] = bool(changes["is_active"])

    for key, value in changes.items():
        setattr(row, key, value)
    row.save()
    return row.to_dict()


def delete_config(config_id: int) -> bool:
    deleted = ChatConfig.delete().where(ChatConfig.id == config_id).execute()
    return deleted > 0
