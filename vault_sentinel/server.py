"""HTTP surface: chat, session inspection/reset, health and manual monitor trigger."""
from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from .errors import ChatRequestError
from .services.chat import GENERIC_FAILURE, ChatService
from .services.scheduler import Scheduler

logger = logging.getLogger(__name__)

CHAT_KEY: web.AppKey[ChatService] = web.AppKey("chat", ChatService)
SCHEDULER_KEY: web.AppKey[Scheduler | None] = web.AppKey("scheduler")


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"success": False, "error": message}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ChatRequestError("Request body must be a JSON object") from e
    if not isinstance(body, dict):
        raise ChatRequestError("Request body must be a JSON object")
    return body


async def handle_chat(request: web.Request) -> web.Response:
    chat = request.app[CHAT_KEY]
    try:
        body = await _read_json(request)
        result = await chat.handle(body)
    except ChatRequestError as e:
        return _error(400, str(e))
    except Exception as e:
        logger.error("Unhandled chat error: %s", e, exc_info=True)
        return _error(500, GENERIC_FAILURE)
    return web.json_response(result, status=200 if result["success"] else 500)


async def handle_get_session(request: web.Request) -> web.Response:
    session_id = request.match_info["session_id"]
    session = request.app[CHAT_KEY].sessions.get(session_id)
    if session is None:
        return _error(404, f"Session {session_id} not found")
    return web.json_response({"success": True, "sessionId": session_id, "data": session.to_dict()})


async def handle_reset_session(request: web.Request) -> web.Response:
    session_id = request.match_info["session_id"]
    return web.json_response(request.app[CHAT_KEY].reset(session_id))


async def handle_health(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    return web.json_response({
        "status": "ok",
        "monitoring": bool(scheduler and scheduler.running),
        "sessions": len(request.app[CHAT_KEY].sessions),
    })


async def handle_trigger(request: web.Request) -> web.Response:
    scheduler = request.app[SCHEDULER_KEY]
    if scheduler is None:
        return _error(503, "Monitoring is not configured")
    report = await scheduler.trigger_comprehensive()
    if report is None:
        return _error(500, "Comprehensive cycle could not complete")
    return web.json_response({
        "success": report.ok,
        "failedStep": report.failed_step,
        "error": report.error,
        "escalated": report.escalate,
    })


def create_app(chat: ChatService, scheduler: Scheduler | None = None) -> web.Application:
    app = web.Application()
    app[CHAT_KEY] = chat
    app[SCHEDULER_KEY] = scheduler
    app.router.add_post("/chat", handle_chat)
    app.router.add_get("/session/{session_id}", handle_get_session)
    app.router.add_post("/session/reset/{session_id}", handle_reset_session)
    app.router.add_get("/health", handle_health)
    app.router.add_post("/monitor/trigger", handle_trigger)
    return app


async def start_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("HTTP server listening on http://%s:%d", host, port)
    return runner
