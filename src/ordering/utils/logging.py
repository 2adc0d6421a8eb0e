"""Logging configuration for the Ordering context."""

import logging

import structlog

logger = structlog.get_logger(__name__)

# Suppress noisy library loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
