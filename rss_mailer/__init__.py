"""RSS to Gmail mailer."""

__version__ = "1.0.0"
