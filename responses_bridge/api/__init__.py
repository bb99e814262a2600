"""HTTP API for the bridge."""
