"""repo-polisher: apply detected typo fixes to a checkout and publish them as pull requests."""

__version__ = "0.1.0"
