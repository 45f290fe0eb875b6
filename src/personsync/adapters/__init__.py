"""Adapters connecting the identity domain to storage and external providers."""
