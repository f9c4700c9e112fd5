"""aiohttp routes exposing :class:`ControlService` over HTTP.

Authentication is expected upstream; when a middleware stores the caller
under ``request["user"]`` its ``mobile_number`` is recorded on control
commands.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from pytankctl.exceptions import TankCtlDeviceNotFoundError, TankCtlRequestError
from pytankctl.service import ControlService

_logger = logging.getLogger(__name__)

SERVICE_KEY: web.AppKey[ControlService] = web.AppKey("control_service", ControlService)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_INTERNAL_ERROR = "Internal server error."


def _json(status: int, body: dict[str, Any]) -> web.Response:
    return web.json_response(body, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Map service exceptions to status codes; never leak internal detail."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except TankCtlRequestError as exc:
        return _json(400, {"success": False, "error": str(exc)})
    except TankCtlDeviceNotFoundError:
        return _json(404, {"success": False, "error": "DeviceId not found or no associated thing ID"})
    except Exception:
        _logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _json(500, {"success": False, "error": _INTERNAL_ERROR})


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        raise TankCtlRequestError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise TankCtlRequestError("Request body must be a JSON object")
    return body


def _requested_by(request: web.Request) -> str | None:
    user = request.get("user")
    if isinstance(user, dict):
        value = user.get("mobile_number")
        return str(value) if value is not None else None
    return None


async def control(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    result = await service.control(await _read_json(request), requested_by=_requested_by(request))
    return _json(200, result.to_dict())


async def slave_request(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    result = await service.slave_request(await _read_json(request))
    return _json(200, result.to_dict())


async def is_base_responded(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    check = await service.is_base_responded(request.match_info["deviceid"])
    return _json(200 if check.responded else 404, check.to_dict())


async def is_tank_responded(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    check = await service.is_tank_responded(request.match_info["deviceid"], request.match_info["sensor_no"])
    return _json(200 if check.responded else 404, check.to_dict())


async def recent_responses(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        seconds = float(request.query.get("seconds", "10"))
    except ValueError as exc:
        raise TankCtlRequestError("seconds must be numeric", field="seconds") from exc
    docs = await service.recent_responses(request.match_info["thingid"], seconds=seconds)
    return web.Response(
        text=json.dumps({"success": True, "data": docs}, default=str),
        content_type="application/json",
    )


def create_app(service: ControlService, *, middlewares: list[Any] | None = None) -> web.Application:
    """Build the application. Extra *middlewares* (e.g. auth) run before the error mapper."""
    app = web.Application(middlewares=[*(middlewares or []), error_middleware])
    app[SERVICE_KEY] = service
    app.router.add_post("/control", control)
    app.router.add_post("/slave-request", slave_request)
    app.router.add_get("/base-responded/{deviceid}", is_base_responded)
    app.router.add_get("/tank-responded/{deviceid}/{sensor_no}", is_tank_responded)
    app.router.add_get("/responses/{thingid}", recent_responses)
    return app
