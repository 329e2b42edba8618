import logging
from typing import Dict

from sqlalchemy import column, select, table
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .....application.ports.entity_directory import EntityDirectory
from .....uploads.types import EntityType, StoragePolicy

logger = logging.getLogger(__name__)


class SqlEntityDirectory(EntityDirectory):
    """Looks up owning records in the business tables named by each storage policy.

    The tables belong to the order-management schema; this adapter only reads ids.
    """

    def __init__(self, session: Session, policies: Dict[EntityType, StoragePolicy]):
        self.session = session
        self.tables = {et: p.entity_table for et, p in policies.items()}

    def exists(self, entity_type: EntityType, entity_id: str) -> bool:
        table_name = self.tables.get(EntityType(entity_type))
        if not table_name:
            return False
        id_col = column("id")
        stmt = select(id_col).select_from(table(table_name, id_col)).where(id_col == entity_id).limit(1)
        try:
            return self.session.execute(stmt).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Entity validation failed for {table_name}/{entity_id}: {e}")
            self.session.rollback()
            return False
