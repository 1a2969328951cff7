"""Repository for key/value store information."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from nook_ordering_service.models.db_models import StoreInfo


class StoreInfoRepository:
    """Reads rows of the ``store_info`` settings table."""

    def __init__(self, session: Session) -> None:
        """Initialize repository.

        Args:
            session: Session bound to the caller's transaction
        """
        self.session = session

    def list_all(self) -> list[StoreInfo]:
        """List every store info row ordered by key."""
        return list(self.session.scalars(select(StoreInfo).order_by(StoreInfo.info_key)))

    def get_by_key(self, key: str) -> StoreInfo | None:
        """Get a single store info row by its key."""
        return self.session.get(StoreInfo, key)
