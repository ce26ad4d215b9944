"""Configuration, logging, metrics and database wiring."""
