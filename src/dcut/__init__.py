"""DialogueCutter: lip-synced dialogue videos from a declarative script."""

__version__ = "0.1.0"
