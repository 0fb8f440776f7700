"""Deployment core: request parsing, descriptor merging and reconciliation."""
