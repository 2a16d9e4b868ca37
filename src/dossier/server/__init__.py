"""Server package - content store, sync API and conditional file server."""
