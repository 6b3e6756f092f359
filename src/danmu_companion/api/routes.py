"""HTTP API - chat config CRUD, AI reply and TTS proxy routes."""

from __future__ import annotations

import logging
from typing import Optional

import aiohttp
import openai
from aiohttp import web

from ..brain.llm_client import LLMClient
from ..errors import (
    ConfigNotFound,
    DuplicatePageKey,
    NothingToUpdate,
    ProviderError,
    ProviderNotConfigured,
    UnsupportedProvider,
)
from ..storage import config_store
from ..voice.providers import PROVIDERS, ProviderCredentials, synthesize_edge, synthesize_third_party
from ..voice.voices import DEFAULT_EDGE_VOICE

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _int_param(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ChatApi:
    """
    Local API used by the companion itself and by config tools.

    Routes are added to an existing application so the overlay page and the
    API share one port.
    """

    def __init__(
        self,
        llm: Optional[LLMClient],
        credentials: ProviderCredentials,
        session: Optional[aiohttp.ClientSession] = None,
        edge_voice: str = DEFAULT_EDGE_VOICE,
    ) -> None:
        self.llm = llm
        self.credentials = credentials
        self.session = session
        self.edge_voice = edge_voice

    def setup_routes(self, app: web.Application) -> None:
        app.router.add_get("/api/chat-config", self.handle_get_config)
        app.router.add_post("/api/chat-config", self.handle_create_config)
        app.router.add_put("/api/chat-config", self.handle_update_config)
        app.router.add_delete("/api/chat-config", self.handle_delete_config)
        app.router.add_post("/api/chat-config/init", self.handle_init_config)
        app.router.add_post("/api/ai-reply", self.handle_ai_reply)
        app.router.add_post("/api/tts/edge", self.handle_edge_tts)
        app.router.add_post("/api/tts/third-party", self.handle_third_party_tts)

    # -- chat config ---------------------------------------------------

    async def handle_get_config(self, request: web.Request) -> web.Response:
        config_id = request.query.get("id")
        page_key = request.query.get("page_key")
        try:
            if config_id:
                parsed = _int_param(config_id)
                if parsed is None:
                    return _error("id must be an integer", 400)
                data = config_store.get_config(parsed)
            elif page_key:
                data = config_store.get_active_config(page_key)
            else:
                data = config_store.list_configs()
        except ConfigNotFound:
            return _error("config not found", 404)
        return web.json_response({"success": True, "data": data})

    async def handle_create_config(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        page_key = body.get("page_key")
        page_name = body.get("page_name")
        config_data = body.get("config_data")
        if not page_key or not page_name or not config_data:
            return _error("missing required fields: page_key, page_name, config_data", 400)

        try:
            data = config_store.create_config(
                page_key=page_key,
                page_name=page_name,
                config_data=config_data,
                description=body.get("description"),
                is_active=body.get("is_active", 1),
            )
        except DuplicatePageKey:
            return _error("page key already exists", 400)
        logger.info("Created chat config %s", page_key)
        return web.json_response({"success": True, "message": "config created", "data": data})

    async def handle_update_config(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        config_id = _int_param(body.get("id"))
        if config_id is None:
            return _error("missing required field: id", 400)

        try:
            data = config_store.update_config(
                config_id,
                page_key=body.get("page_key"),
                page_name=body.get("page_name"),
                config_data=body.get("config_data"),
                description=body.get("description"),
                is_active=body.get("is_active"),
            )
        except NothingToUpdate:
            return _error("no fields to update", 400)
        except DuplicatePageKey:
            return _error("page key is already used", 400)
        except ConfigNotFound:
            return _error("config not found", 404)
        return web.json_response({"success": True, "message": "config updated", "data": data})

    async def handle_delete_config(self, request: web.Request) -> web.Response:
        config_id = _int_param(request.query.get("id"))
        if config_id is None:
            return _error("missing required parameter: id", 400)
        deleted = config_store.delete_config(config_id)
        return web.json_response({
            "success": True,
            "message": "config deleted" if deleted else "nothing to delete",
        })

    async def handle_init_config(self, request: web.Request) -> web.Response:
        created = config_store.ensure_defaults()
        return web.json_response({
            "success": True,
            "message": "chat config table initialized",
            "created": created,
        })

    # -- AI ------------------------------------------------------------

    def _page_system_prompt(self, page_key: Optional[str]) -> Optional[str]:
        if not page_key:
            return None
        try:
            config = config_store.get_active_config(page_key)
        except ConfigNotFound:
            return None
        ai = config["config_data"].get("ai") if isinstance(config["config_data"], dict) else None
        if isinstance(ai, dict) and isinstance(ai.get("systemPrompt"), str):
            return ai["systemPrompt"] or None
        return None

    async def handle_ai_reply(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        message = body.get("message")
        if not isinstance(message, str) or not message.strip():
            return _error("message must not be empty", 400)

        if self.llm is None:
            logger.error("AI reply requested but AI_API_KEY is not set")
            return _error("AI service not configured", 500)

        try:
            reply = await self.llm.generate(
                message,
                context=body.get("context"),
                system_prompt=self._page_system_prompt(body.get("page_key")),
            )
        except openai.APIStatusError as e:
            logger.error("AI upstream error %s: %s", e.status_code, e.message)
            return _error(e.message or f"request failed: {e.status_code}", e.status_code)
        except openai.OpenAIError as e:
            logger.error("AI request failed: %s", e)
            return _error(str(e), 500)

        return web.json_response({"success": True, "reply": reply})

    # -- TTS proxies ---------------------------------------------------

    async def handle_edge_tts(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        text = body.get("text")
        if not isinstance(text, str) or not text.strip():
            return _error("text must not be empty", 400)

        try:
            audio = await synthesize_edge(
                text,
                voice=body.get("voice") or self.edge_voice,
                rate=body.get("rate") or "+0%",
                pitch=body.get("pitch") or "+0Hz",
            )
        except ProviderError as e:
            logger.error("Edge TTS failed: %s", e)
            return _error(str(e), 500)
        return web.Response(body=audio, content_type="audio/mpeg")

    async def handle_third_party_tts(self, request: web.Request) -> web.Response:
        body = await _json_body(request)
        text = body.get("text")
        provider = body.get("provider")
        if not isinstance(text, str) or not text.strip():
            return _error("text must not be empty", 400)
        if provider not in PROVIDERS:
            return _error(f"unsupported TTS provider: {provider}", 400)
        if self.session is None:
            return _error("HTTP session not available", 500)

        try:
            audio = await synthesize_third_party(
                provider,
                text,
                self.credentials,
                self.session,
                voice=body.get("voice"),
                speed=_int_param(body.get("speed", 5)),
                pitch=_int_param(body.get("pitch", 5)),
            )
        except (ProviderNotConfigured, UnsupportedProvider) as e:
            logger.warning("Third-party TTS (%s) unavailable: %s", provider, e)
            return _error(str(e), 500)
        except ProviderError as e:
            logger.error("Third-party TTS (%s) failed: %s", provider, e)
            return _error(str(e), 500)
        return web.Response(body=audio, content_type="audio/mpeg")
