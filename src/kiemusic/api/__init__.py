"""HTTP API for kie-music."""
