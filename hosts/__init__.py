"""Hosts package providing document access and navigation over chat pages."""

from .base_host import BaseHost, HostError, NavigationError, PageSnapshot, ScrollPosition, Subscription
from .html_snapshot_host import HtmlSnapshotHost
from .selectors import Selectors, conversation_href, conversation_id_from_href, conversation_id_from_url


class HostFactory:
    """Factory for creating host instances based on configuration."""

    @staticmethod
    def create_host(config: dict, logger):
        """Create appropriate host based on config mode.

        Args:
            config: Configuration dictionary
            logger: Logger instance

        Returns:
            BaseHost instance

        Raises:
            ValueError: If mode is invalid
        """
        mode = config.get('host', {}).get('mode', 'snapshot')

        if mode == 'snapshot':
            return HtmlSnapshotHost(config, logger)
        else:
            raise ValueError(f"Invalid host mode: {mode}. Must be 'snapshot'.")


__all__ = [
    'BaseHost',
    'HostError',
    'NavigationError',
    'PageSnapshot',
    'ScrollPosition',
    'Subscription',
    'HtmlSnapshotHost',
    'HostFactory',
    'Selectors',
    'conversation_href',
    'conversation_id_from_href',
    'conversation_id_from_url'
]
