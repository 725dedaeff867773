"""Command-line host for the NetSDR SDK."""
