"""Commands for the depot CLI."""
