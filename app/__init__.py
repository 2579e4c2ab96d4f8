"""STS electricity token vend service."""

__version__ = "0.1.0"
