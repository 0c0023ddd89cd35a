"""Feed Gateway: HTTP facade over a remote activity-feed service."""

__version__ = "0.1.0"
