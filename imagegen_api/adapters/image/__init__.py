"""Image generation adapters (the expensive, metered operation)."""
