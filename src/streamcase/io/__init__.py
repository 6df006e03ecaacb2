"""I/O layer: wire protocol and response producers."""
