"""Application layer: orchestrates identity services into use cases."""
