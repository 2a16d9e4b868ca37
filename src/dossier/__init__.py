"""Dossier - content-addressed directory sync with conditional HTTP serving."""

__version__ = "0.1.0"
