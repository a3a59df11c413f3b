#!/usr/bin/env python3
"""
Idempotent creation of the default admin user.
Reads credentials from the environment and creates the admin if missing,
or promotes an existing account with that email.

ENV:
- ADMIN_DEFAULT_EMAIL    (required)
- ADMIN_DEFAULT_PASSWORD (required)
- ADMIN_DEFAULT_NAME     (default: Admin)

Database URL is taken from core.config.Settings (POSTGRES_DSN or parts).
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys

# Ensure project root on PYTHONPATH
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.append(BASE_DIR)

from affiliate.services.users import ensure_admin  # noqa: E402
from core.config import get_settings  # noqa: E402
from core.db import SessionFactory, engine, init_db  # noqa: E402
from core.logging_setup import configure_logging  # noqa: E402

logger = logging.getLogger("scripts.ensure_superadmin")


async def ensure_superadmin() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)

    email = settings.admin_default_email
    password = settings.admin_default_password
    if not email or not password:
        logger.error("ADMIN_DEFAULT_EMAIL and ADMIN_DEFAULT_PASSWORD must be set")
        return 1

    if settings.auto_create_schema:
        await init_db()

    async with SessionFactory() as session:
        admin = await ensure_admin(session, email, password, name=settings.admin_default_name)
    logger.info("Default admin ready", extra={"user_id": admin.id})
    await engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(ensure_superadmin()))
