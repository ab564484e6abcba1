"""Chain adapters for the two sides of the bridge."""
