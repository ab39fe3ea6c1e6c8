"""Query execution package."""

from debt_ledger.queries.executor import RecordQueryExecutor

__all__ = ["RecordQueryExecutor"]
