"""ResidentResolve: complaint tracking for residential facilities."""

__version__ = "0.1.0"
