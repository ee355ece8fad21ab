"""Configuration for the Git proxy."""
