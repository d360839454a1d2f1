"""Domain models, enums and errors shared across the pipeline."""
