"""Database models, engine setup and repositories."""
