"""Data source access: connections, batch reads and selection text parsing."""
