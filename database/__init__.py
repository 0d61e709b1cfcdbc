from .connection import database, metadata, create_tables, write_transaction

__all__ = ["database", "metadata", "create_tables", "write_transaction"]
