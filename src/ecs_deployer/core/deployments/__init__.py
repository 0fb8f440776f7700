"""Deployment platform integrations."""
