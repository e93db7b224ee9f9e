"""hello-dispatch - routes names through a stage pipeline to a greeting service."""

__version__ = "0.1.0"
