"""pgfleet CLI commands."""
