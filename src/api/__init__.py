"""HTTP API for the Trust Witness server."""
