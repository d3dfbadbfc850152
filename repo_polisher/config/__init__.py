"""Configuration for repo-polisher.

Example:
    >>> from repo_polisher.config import load_settings
    >>> settings = load_settings("polisher.yaml")
    >>> settings.publish.base_branch
    'main'
"""

from repo_polisher.config.settings import (
    CheckoutConfig,
    GhCliConfig,
    PolisherSettings,
    PublishConfig,
    StoreConfig,
    load_settings,
)

__all__ = [
    "PolisherSettings",
    "GhCliConfig",
    "CheckoutConfig",
    "StoreConfig",
    "PublishConfig",
    "load_settings",
]
