"""Command line interface for ccrouter."""
