"""Retrieval API and chat context helpers for DocGround."""
