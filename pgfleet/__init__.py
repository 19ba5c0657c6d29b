"""pgfleet - control plane for fleets of PostgreSQL clusters."""

__version__ = "0.8.0"
