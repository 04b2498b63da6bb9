"""Release automation for Cargo packages: verify, bump, publish, push."""

__version__ = "0.3.1"
