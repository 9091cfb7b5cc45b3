"""Search backend adapters."""
