"""Configuration: settings, engine options and the constraint catalogue."""
