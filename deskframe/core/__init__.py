"""Core infrastructure for deskframe: configuration, logging, health, errors."""
