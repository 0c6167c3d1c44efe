"""
Runtime configuration provider.

Values live in the config table so that every process sharing the store
sees the same settings; keys that were never set fall back to the
environment-driven Settings.
"""

import logging
from typing import Any

import pydantic

from queuectl.config import get_settings
from queuectl.constants import CONFIG_KEYS
from queuectl.db import ConfigRepository, get_session_context
from queuectl.exceptions import ValidationError
from queuectl.types.api import QueueConfig

logger = logging.getLogger(__name__)


def _defaults() -> dict[str, Any]:
    settings = get_settings()
    return {
        "max_retries": settings.max_retries,
        "backoff_base": settings.backoff_base,
        "poll_interval_seconds": settings.poll_interval_seconds,
    }


def _validate(values: dict[str, Any]) -> QueueConfig:
    try:
        return QueueConfig.model_validate(values)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


async def get_config() -> QueueConfig:
    """
    Get the effective configuration.

    Returns:
        Stored values layered over the defaults.
    """
    async with get_session_context() as session:
        stored = await ConfigRepository(session).get_all()

    values = _defaults()
    values.update({k: v for k, v in stored.items() if k in CONFIG_KEYS})
    return _validate(values)


async def get_value(key: str) -> Any:
    """
    Get one configuration value.

    Raises:
        ValidationError: If the key is unknown.
    """
    if key not in CONFIG_KEYS:
        raise ValidationError(f"Unknown config key: {key}")
    config = await get_config()
    return getattr(config, key)


async def update_config(changes: dict[str, Any]) -> QueueConfig:
    """
    Validate and persist configuration changes.

    The whole resulting configuration is validated before anything is
    written, so a bad value leaves the stored config untouched.

    Args:
        changes: Mapping of key -> new value.

    Returns:
        The effective configuration after the update.

    Raises:
        ValidationError: On unknown keys or invalid values.
    """
    unknown = sorted(set(changes) - set(CONFIG_KEYS))
    if unknown:
        raise ValidationError(f"Unknown config key(s): {', '.join(unknown)}")

    current = (await get_config()).model_dump()
    updated = _validate({**current, **changes})

    async with get_session_context() as session:
        repo = ConfigRepository(session)
        for key in changes:
            await repo.set(key, str(getattr(updated, key)))

    logger.info("Config updated", extra={"changes": sorted(changes)})
    return updated


async def set_value(key: str, value: Any) -> QueueConfig:
    """Set a single configuration value."""
    return await update_config({key: value})
