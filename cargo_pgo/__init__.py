"""Profile-guided and post-link (BOLT) optimization workflows for Cargo projects."""

__version__ = "0.1.0"
