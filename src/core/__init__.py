"""Configuration and error types shared by the Loki tools."""
