"""Infrastructure layer: retry engine, HTTP and configuration loading."""
