"""Business metadata such as opening hours, address and contact details."""

from dataclasses import dataclass

from nook_ordering_service.errors import OrderingError, ReturnCode
from nook_ordering_service.observability.decorators import traced
from nook_ordering_service.repositories.database import Database
from nook_ordering_service.repositories.store_info_repository import StoreInfoRepository


@dataclass
class StoreInfoEntry:
    key: str
    value: str
    description: str | None = None


class StoreInfoService:
    """Reads the ``store_info`` key/value settings."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @traced("store_info.get_all")
    async def get_all(self) -> dict[str, str]:
        """Get every setting as a key to value map."""
        with self.database.transaction() as session:
            return {row.info_key: row.info_value for row in StoreInfoRepository(session).list_all()}

    @traced("store_info.get")
    async def get(self, key: str) -> StoreInfoEntry:
        """Get one setting.

        Raises:
            OrderingError: ``INFO_NOT_FOUND`` if the key is unknown
        """
        with self.database.transaction() as session:
            row = StoreInfoRepository(session).get_by_key(key)
            if row is None:
                raise OrderingError(
                    ReturnCode.INFO_NOT_FOUND, f"Store information not found for key: {key}"
                )
            return StoreInfoEntry(key=row.info_key, value=row.info_value, description=row.description)
