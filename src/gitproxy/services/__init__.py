"""Request translation and relay services."""
