"""PostgreSQL storage for the schedule table."""
