"""History log parsers."""
