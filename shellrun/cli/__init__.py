"""Command line interface for shellrun."""
