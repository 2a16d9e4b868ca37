"""Client package - sync targets, HTTP client, sync engine and CLI."""
