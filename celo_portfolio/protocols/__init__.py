"""Protocol-specific position logic."""
