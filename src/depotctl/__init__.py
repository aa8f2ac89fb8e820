"""depotctl: package deployment client for managed machines."""

__version__ = "1.4.0"
