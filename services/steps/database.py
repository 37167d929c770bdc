"""
Database query step using SQLAlchemy.
"""

import asyncio
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from core.logging_config import get_logger
from .registry import StepResult

logger = get_logger(__name__)


def _run_query(database_url: str, query: str) -> Dict[str, Any]:
    engine = create_engine(database_url)
    try:
        with engine.begin() as connection:
            result = connection.execute(text(query))
            if result.returns_rows:
                rows: List[Dict[str, Any]] = [dict(row._mapping) for row in result]
                return {"rows": rows, "count": len(rows)}
            return {"rows": [], "count": result.rowcount}
    finally:
        engine.dispose()


async def database_query(db_query: str, database_url: Optional[str] = None) -> StepResult:
    """Run one SQL statement; blocking driver work happens in a worker thread"""
    if not database_url:
        return StepResult.fail("DATABASE_URL is not configured")
    if not db_query or not db_query.strip():
        return StepResult.fail("Query is required")

    logger.info("Running database query")
    try:
        data = await asyncio.to_thread(_run_query, database_url, db_query)
    except SQLAlchemyError as e:
        return StepResult.fail(f"Database query failed: {e}")
    return StepResult.ok(data)
