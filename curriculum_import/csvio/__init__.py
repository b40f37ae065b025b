"""CSV decoding, header/value normalization and row validation."""
