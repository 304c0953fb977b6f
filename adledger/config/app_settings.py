"""
Admin settings provider.

The engine never reads admin settings ad hoc. Each operation asks its
provider for one ConfigSnapshot and reads every key from that snapshot, so a
concurrent admin edit cannot change values halfway through an operation.
"""

import json
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Protocol

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config.setting_keys import DEFAULTS
from adledger.repositories.admin_setting_repository import AdminSettingRepository


class ConfigSnapshot:
    """Immutable view of admin settings with typed accessors."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = MappingProxyType(dict(values))

    def __repr__(self) -> str:
        return f"<ConfigSnapshot keys={len(self._values)}>"

    def get_str(self, key: str) -> str:
        """Raw value, falling back to the documented default."""
        value = self._values.get(key)
        if value is None or value == "":
            value = DEFAULTS.get(key)
        if value is None:
            raise KeyError(f"Unknown setting without default: {key}")
        return value

    def get_int(self, key: str) -> int:
        value = self.get_str(key)
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer setting, using default",
                extra={"key": key, "value": value},
            )
            return int(DEFAULTS[key])

    def get_decimal(self, key: str) -> Decimal:
        value = self.get_str(key)
        try:
            return Decimal(value)
        except InvalidOperation:
            logger.warning(
                "Invalid decimal setting, using default",
                extra={"key": key, "value": value},
            )
            return Decimal(DEFAULTS[key])

    def get_bool(self, key: str) -> bool:
        return self.get_str(key).strip().lower() in ("true", "1", "yes", "on")

    def get_json(self, key: str) -> Any:
        value = self.get_str(key)
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(
                "Invalid JSON setting, using default",
                extra={"key": key, "value": value},
            )
            return json.loads(DEFAULTS[key])


class ConfigProvider(Protocol):
    """Source of admin settings snapshots."""

    async def snapshot(self, session: AsyncSession) -> ConfigSnapshot:
        ...


class StaticConfigProvider:
    """Provider backed by a fixed mapping (defaults fill the gaps)."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self.values = dict(values or {})

    async def snapshot(self, session: AsyncSession) -> ConfigSnapshot:
        return ConfigSnapshot(self.values)


class DatabaseConfigProvider:
    """Provider reading the admin_settings table once per operation."""

    async def snapshot(self, session: AsyncSession) -> ConfigSnapshot:
        try:
            async with session.begin_nested():
                values = await AdminSettingRepository(session).get_all_values()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to load admin settings, using defaults",
                extra={"error": str(e)},
            )
            values = {}
        return ConfigSnapshot(values)
