#!/usr/bin/env python3
from __future__ import annotations

import asyncio

from astrochat.container import build_services
from astrochat.core.logger import setup_logger
from astrochat.core.settings import get_settings


async def _purge() -> int:
    settings = get_settings()
    setup_logger(settings.log_level)
    services = build_services(settings)
    try:
        return await services.authority.purge_expired()
    finally:
        dispose = getattr(services.store, "dispose", None)
        if dispose is not None:
            await dispose()


def main() -> None:
    settings = get_settings()
    if not settings.database_url:
        raise SystemExit("Missing DATABASE_URL; the in-memory store has nothing to clean.")
    removed = asyncio.run(_purge())
    print(f"Deleted {removed} expired session tokens.")


if __name__ == "__main__":
    main()
