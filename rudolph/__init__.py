"""Rules, sensor data, sync state and machine configuration for a Santa sync server."""

__version__ = "0.1.0"