"""File ingestion: CSV/Excel parsing and header mapping."""
