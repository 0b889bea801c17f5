"""FastAPI routers: trust scoring, provenance, decisions and stats."""
