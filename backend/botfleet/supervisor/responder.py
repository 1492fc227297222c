"""Whisper-triggered auto-responder.

A whisper containing the trigger token asks the bot to pull someone to it:
the token right after the trigger names the target, otherwise the sender
is the target.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AutoResponder:
    """Stateless rule: whisper text in, outbound command (or None) out."""

    trigger: str = "tpmekaro"
    command_template: str = "/tpahere {target}"

    def find_target(self, sender: str, content: str) -> str | None:
        """Return who the command should target, or None if not triggered."""
        tokens = content.split()
        try:
            index = tokens.index(self.trigger)
        except ValueError:
            return None

        if index + 1 < len(tokens):
            return tokens[index + 1]
        return sender

    def respond(self, sender: str, content: str) -> str | None:
        target = self.find_target(sender, content)
        if target is None:
            return None
        return self.command_template.format(target=target)
