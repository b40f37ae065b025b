"""Command line interface (``python -m curriculum_import.cli``)."""
