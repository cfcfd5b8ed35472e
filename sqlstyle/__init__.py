"""SQL style guide with its sqlfluff settings and a checker that keeps them in sync."""

__version__ = "0.1.0"
