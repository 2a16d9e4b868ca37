"""HTTP sync API."""
