"""Read CBF diagnostic containers and convert their ECU definitions to JSON."""

__version__ = "0.1.0"