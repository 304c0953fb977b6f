"""
AdminSetting repository.

Data access layer for admin-editable business settings.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.admin_setting import AdminSetting
from adledger.repositories.base import BaseRepository


class AdminSettingRepository(BaseRepository[AdminSetting]):
    """Admin setting repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize admin setting repository."""
        super().__init__(AdminSetting, session)

    async def get_value(self, key: str) -> str | None:
        """Get raw value of a setting, or None when unset."""
        setting = await self.get_by(setting_key=key)
        return setting.setting_value if setting else None

    async def set_value(
        self, key: str, value: str, description: str | None = None
    ) -> AdminSetting:
        """
        Create or update a setting.

        Args:
            key: Setting key
            value: Raw string value
            description: Optional description

        Returns:
            Stored setting
        """
        setting = await self.get_by(setting_key=key)
        if setting is None:
            return await self.create(
                setting_key=key, setting_value=value, description=description
            )

        setting.setting_value = value
        if description is not None:
            setting.description = description
        await self.session.flush()
        return setting

    async def get_all_values(self) -> dict[str, str]:
        """Get every stored setting as a key -> value mapping."""
        settings = await self.find_all()
        return {s.setting_key: s.setting_value for s in settings}
