"""Building blocks for the FastAPI service (error mapping, context, limits)."""
