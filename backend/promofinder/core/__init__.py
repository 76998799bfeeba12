"""Core cross-cutting modules: exceptions and logging."""
