"""Core helpers: configuration, errors, units and order math."""
