"""Publish capability and its HTTP gateway implementation."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pytankctl._constants import USER_AGENT
from pytankctl._redact import redact_for_log
from pytankctl.config import TankCtlConfig
from pytankctl.exceptions import TankCtlConfigError, TankCtlPublishError

_logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Structural publish interface used by :class:`ControlService`.

    ``publish`` returns once the fabric accepted the message and raises
    :class:`TankCtlPublishError` otherwise.
    """

    async def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        ...


class HttpPublisher:
    """Publishes through an HTTP gateway (e.g. a cloud function fronting the broker).

    The gateway receives ``{"topic": ..., "payload": ...}`` and is expected
    to answer 2xx. A JSON body with ``"success": false`` is treated as a
    failure as well.
    """

    def __init__(
        self,
        config: TankCtlConfig,
        http_session: aiohttp.ClientSession,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if not config.publish_url:
            raise TankCtlConfigError("publish_url is required for HttpPublisher")
        self._url = config.publish_url
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)
        self._headers: dict[str, str] = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
            **(headers or {}),
        }

    async def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        body = json.dumps({"topic": topic, "payload": dict(payload)}, separators=(",", ":"), default=str)
        _logger.debug(
            "POST %s topic=%s payload=%s headers=%s",
            self._url,
            topic,
            redact_for_log(payload),
            redact_for_log(self._headers),
        )

        try:
            async with self._http.post(self._url, data=body, headers=self._headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status // 100 != 2:
                    raise TankCtlPublishError(
                        f"HTTP {resp.status} from publish gateway: {text[:200]}",
                        topic=topic,
                        status_code=resp.status,
                    )
        except TankCtlPublishError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TankCtlPublishError(
                f"Publish to {topic} failed: {exc!r}",
                topic=topic,
            ) from exc

        try:
            result = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            # Some gateways answer with a plain-text acknowledgement.
            return
        if isinstance(result, dict) and result.get("success") is False:
            raise TankCtlPublishError(
                f"Publish gateway rejected {topic}: {str(result.get('error') or result)[:200]}",
                topic=topic,
                status_code=resp.status,
            )
