"""HTTP API for Focus Flow."""
