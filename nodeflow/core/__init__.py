"""Settings, logging, errors and dependency wiring."""
