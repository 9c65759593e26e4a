"""stackgen -- plugin-driven project scaffolding for JavaScript stacks."""

__version__ = "0.1.0"
