"""HTTP transport for the gpodder API."""
