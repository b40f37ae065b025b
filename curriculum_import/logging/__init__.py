"""Application logging and the JSON Lines error log."""
