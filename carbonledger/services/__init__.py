"""Domain services operating on a SQLAlchemy session."""
