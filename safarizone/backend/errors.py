"""Error taxonomy shared by the game core and the API layer."""

from __future__ import annotations


class SafariError(Exception):
    """Base class for every error raised by the Safari Zone backend."""


class UserError(SafariError):
    """Invalid request from a player or host; the message is shown verbatim."""


class ConfigurationError(SafariError):
    """The arena's zone map cannot host a game."""


class InvariantViolation(SafariError):
    """Internal game state is inconsistent; the game has to be torn down."""


class AlreadyInLobby(UserError):
    """The player is already admitted to this game's lobby."""


class NotInLobby(UserError):
    """The operation needs the game to still be in its lobby phase."""
