"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .stats_client import StatsClient, StatsClientConfig

__all__ = ['StatsClient', 'StatsClientConfig']
