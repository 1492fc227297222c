"""Observer push channel."""
