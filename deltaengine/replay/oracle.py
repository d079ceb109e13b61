"""
Table existence oracle for the replay target.
"""

import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from ..core.errors import TargetTableMissing
from ..core.naming import is_safe_identifier

logger = logging.getLogger(__name__)


class TableExistenceOracle:
    """
    Answers whether a table exists in the target's default schema.

    A lookup that fails is answered "does not exist" and the error is logged,
    so an unreadable catalog leads to skipped deltas rather than a crash.
    """

    def __init__(self, engine: Engine, schema: Optional[str] = None) -> None:
        self.engine = engine
        self.schema = schema

    def exists(self, table_name: str) -> bool:
        if not is_safe_identifier(table_name):
            logger.warning("Refusing to look up malformed table name %r", table_name)
            return False
        try:
            return sa.inspect(self.engine).has_table(table_name, schema=self.schema)
        except sa.exc.SQLAlchemyError as ex:
            logger.warning("Error checking if table %s exists in restored database: %s", table_name, ex)
            return False

    def require(self, table_name: str) -> None:
        """
        Raises:
            TargetTableMissing: If the table does not exist
        """
        if not self.exists(table_name):
            raise TargetTableMissing(table_name)
