"""Agent relay: concurrent execution of agent CLIs behind sessions and HTTP."""

__version__ = "0.1.0"
