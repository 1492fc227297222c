"""botfleet - supervisor for a fleet of game-server bot sessions."""

__version__ = "1.0.0"
