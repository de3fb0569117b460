"""Gatewatch: instance registry and health aggregation for messaging gateways."""

__version__ = "0.1.0"
