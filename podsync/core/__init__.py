"""Core helpers shared by the service layer."""
