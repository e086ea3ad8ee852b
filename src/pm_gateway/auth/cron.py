"""Shared-secret guard for scheduler-invoked job endpoints.

The external scheduler sends `X-Cron-Secret`. An unset CRON_SECRET rejects
every call, so the jobs API is closed until it is configured.
"""

import hmac

from fastapi import Header

from config.settings import settings
from src.pm_common.errors import InvalidCronSecretError


async def require_cron_secret(
    x_cron_secret: str | None = Header(default=None),
) -> None:
    expected = settings.CRON_SECRET
    if not expected or not x_cron_secret:
        raise InvalidCronSecretError()
    if not hmac.compare_digest(x_cron_secret.encode(), expected.encode()):
        raise InvalidCronSecretError()
