"""Database infrastructure: engine, sessions and declarative base."""
