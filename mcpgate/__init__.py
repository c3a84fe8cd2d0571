"""Building blocks for an MCP gateway: domain models, policy engines, audit and deployment providers."""

__version__ = "0.1.0"