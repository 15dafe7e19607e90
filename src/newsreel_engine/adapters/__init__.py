"""Provider adapters for external generation and rendering services."""
