#!/usr/bin/env python3
"""Run the pytankctl HTTP surface.

Publishes through the HTTP gateway when ``TANKCTL_PUBLISH_URL`` is set,
otherwise connects straight to the broker at ``TANKCTL_MQTT_HOST``
(credentials from ``TANKCTL_MQTT_USERNAME`` / ``TANKCTL_MQTT_PASSWORD``).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import AsyncIterator
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402
from aiohttp import web  # noqa: E402

from pytankctl import (  # noqa: E402
    ControlService,
    HttpPublisher,
    MongoDocumentStore,
    MqttPublisher,
    TankCtlConfig,
    TankCtlConfigError,
)
from pytankctl.web import create_app  # noqa: E402

_LOG = logging.getLogger("serve")


def build_app(config: TankCtlConfig) -> web.Application:
    store = MongoDocumentStore.from_config(config)
    http_session: aiohttp.ClientSession | None = None
    mqtt_publisher: MqttPublisher | None = None

    if config.publish_url:
        http_session = aiohttp.ClientSession()
        publisher: HttpPublisher | MqttPublisher = HttpPublisher(config, http_session)
    elif config.mqtt_host:
        mqtt_publisher = MqttPublisher.from_config(
            config,
            username=os.environ.get("TANKCTL_MQTT_USERNAME"),
            password=os.environ.get("TANKCTL_MQTT_PASSWORD"),
        )
        publisher = mqtt_publisher
    else:
        raise TankCtlConfigError("Set TANKCTL_PUBLISH_URL or TANKCTL_MQTT_HOST")

    app = create_app(ControlService(config, store, publisher))

    async def _lifecycle(_app: web.Application) -> AsyncIterator[None]:
        if mqtt_publisher is not None:
            mqtt_publisher.start()
        yield
        if mqtt_publisher is not None:
            mqtt_publisher.stop()
        if http_session is not None:
            await http_session.close()
        await store.close()

    app.cleanup_ctx.append(_lifecycle)
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the pytankctl control API.")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = TankCtlConfig.from_env()
    _LOG.info("Starting on %s:%d (db=%s)", args.host, args.port, config.database)
    web.run_app(build_app(config), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
