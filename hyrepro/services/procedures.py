"""
Remote Procedure Gateway
Calls PostgreSQL functions that hold the hiring analytics and workflow logic
"""
import logging
import re
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class ProcedureError(Exception):
    """A remote procedure call failed (as opposed to returning no rows)"""

    def __init__(self, procedure: str, message: str):
        super().__init__(message)
        self.procedure = procedure
        self.message = message


class ProcedureGateway:
    """
    Thin wrapper over `SELECT * FROM fn(arg => :arg, ...)`

    Results follow the PostgREST rpc convention:
    - a function returning a single scalar/json value yields that value
    - a set-returning function yields a list of row dicts
    """

    def build_statement(self, name: str, params: Dict[str, Any]) -> str:
        if not IDENTIFIER.match(name):
            raise ValueError(f"Invalid procedure name: {name!r}")
        for key in params:
            if not IDENTIFIER.match(key):
                raise ValueError(f"Invalid parameter name: {key!r}")
        args = ", ".join(f"{key} => :{key}" for key in params)
        return f"SELECT * FROM {name}({args})"

    def call(self, db: Session, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        params = params or {}
        statement = self.build_statement(name, params)

        try:
            result = db.execute(text(statement), params)
            columns = list(result.keys())
            rows = [dict(row._mapping) for row in result]
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Procedure %s failed: %s", name, e)
            raise ProcedureError(name, str(getattr(e, "orig", None) or e)) from e

        if len(columns) == 1 and columns[0] == name:
            return rows[0][name] if rows else None
        return rows


def first_row(data: Any) -> Optional[Any]:
    """Works for both rpc shapes: returns the first row, the object itself, or None"""
    if data is None:
        return None
    if isinstance(data, list):
        return data[0] if data else None
    return data


procedures = ProcedureGateway()
