"""IO adapters: HTTP sessions and inbound payload validation."""
