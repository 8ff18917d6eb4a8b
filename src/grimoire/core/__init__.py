"""Core infrastructure: configuration, logging, errors, persistence, providers."""
