"""Domain pipelines: composable request processing with explicit results."""

__version__ = "0.1.0"
