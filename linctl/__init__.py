"""linctl: Linear issue tools for agents, plus a verified webhook receiver."""

__version__ = "0.1.0"
