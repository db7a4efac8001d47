"""Shared helpers: constants, exceptions, datetime, validation and logging."""
