"""HTTP façade over the query and session services."""

from agent_relay.api.app import API_PREFIX, create_app

__all__ = ["API_PREFIX", "create_app"]
