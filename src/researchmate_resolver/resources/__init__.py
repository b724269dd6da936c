"""Package data: the bundled provider catalogue."""
