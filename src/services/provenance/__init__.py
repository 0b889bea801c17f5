"""Provenance chain tracking."""

from src.services.provenance.tracker import ProvenanceChainTracker, compute_digest

__all__ = ["ProvenanceChainTracker", "compute_digest"]
