"""Schedule (カリキュラム) CSV ingestion into PostgreSQL."""

__version__ = "0.1.0"
