"""In-memory stores backing the REST surface."""
