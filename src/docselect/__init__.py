"""docselect - budgeted context document selection for AI prompts."""

__version__ = "0.1.0"
