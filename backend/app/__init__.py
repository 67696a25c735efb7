"""HTTP surface and SQL persistence for the workflow engine."""
