"""Plugin fetching, resolution and installation."""
