"""regwatch: scheduled multi-source regulatory ingestion."""

__version__ = "1.0.0"
