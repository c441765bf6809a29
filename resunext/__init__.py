"""ResuNext - session client, route guard and auth backend."""

__version__ = "0.1.0"
