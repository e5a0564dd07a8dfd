"""Configuration: settings, configuration file models and logging setup."""
