"""Platform-wide exception hierarchy."""
