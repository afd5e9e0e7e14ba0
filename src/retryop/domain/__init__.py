"""Domain layer: errors, models and configuration."""
