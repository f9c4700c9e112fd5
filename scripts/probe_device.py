#!/usr/bin/env python3
"""Inspect how pytankctl sees a device, without publishing anything.

Resolves the device id to its thing id, then optionally waits for a
liveness reply (base) or a sensor update (tank) and lists recent replies
stored for the thing id. Reads ``TANKCTL_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytankctl import ControlService, MongoDocumentStore, TankCtlConfig, TankCtlPublishError  # noqa: E402


class _NoPublish:
    async def publish(self, topic: str, _payload: Any) -> None:
        raise TankCtlPublishError("probe_device never publishes", topic=topic)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Resolve a device and inspect its recent replies.")
    parser.add_argument("device_id", help="Device id as entered in the app")
    parser.add_argument("--base", action="store_true", help="Wait for a base liveness reply")
    parser.add_argument("--sensor", help="Wait for an update from this tank sensor number")
    parser.add_argument("--seconds", type=float, default=60.0, help="Window for recent replies (default: 60)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = TankCtlConfig.from_env()
    store = MongoDocumentStore.from_config(config)
    service = ControlService(config, store, _NoPublish())
    result: dict[str, Any] = {"device_id": args.device_id}

    try:
        thing_id = await service.resolve_thing_id(args.device_id)
        result["thing_id"] = thing_id
        if args.base:
            result["base"] = (await service.is_base_responded(args.device_id)).to_dict()
        if args.sensor:
            result["tank"] = (await service.is_tank_responded(args.device_id, args.sensor)).to_dict()
        result["recent"] = await service.recent_responses(thing_id, seconds=args.seconds)
    finally:
        await store.close()

    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
