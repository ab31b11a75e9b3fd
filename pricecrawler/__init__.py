"""Multi-source product price aggregation."""
