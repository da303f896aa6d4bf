"""Persistence and infrastructure services for the Flask app."""
