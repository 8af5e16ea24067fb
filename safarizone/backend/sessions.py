"""Token-guarded sessions binding API callers to arena games."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import UserError
from .game import ArenaRegistry, GameOptions, SafariGame
from .models import AdmittedPlayer, GameAccess, OpenedGame, Role
from .security import hash_token, issue_token, tokens_match
from .zones import ZoneMap


@dataclass
class GameSession:
    game: SafariGame
    host_token_hash: str
    server_salt: str
    player_token_hashes: dict[str, str] = field(default_factory=dict)

    def access(self, raw_token: str) -> GameAccess | None:
        if tokens_match(raw_token, self.host_token_hash, self.server_salt):
            return GameAccess(arena_id=self.game.arena_id, role=Role.HOST)
        for player_id, token_hash in self.player_token_hashes.items():
            if tokens_match(raw_token, token_hash, self.server_salt):
                return GameAccess(arena_id=self.game.arena_id, role=Role.PLAYER, player_id=player_id)
        return None

    def grant_player(self, player_id: str) -> str:
        token = issue_token()
        self.player_token_hashes[player_id] = hash_token(token, self.server_salt)
        return token

    def revoke_player(self, player_id: str) -> None:
        self.player_token_hashes.pop(player_id, None)


class SessionRegistry:
    def __init__(self, arenas: ArenaRegistry, server_salt: str) -> None:
        self.arenas = arenas
        self.server_salt = server_salt
        self._sessions: dict[str, GameSession] = {}

    def open_game(self, arena_id: str, zone_map: ZoneMap | None, options: GameOptions) -> OpenedGame:
        game = self.arenas.start_game(arena_id, zone_map, options)
        host_token = issue_token()
        self._sessions[arena_id] = GameSession(
            game=game,
            host_token_hash=hash_token(host_token, self.server_salt),
            server_salt=self.server_salt,
        )
        return OpenedGame(arena_id=arena_id, game_id=game.tournament.tournament_id, host_token=host_token)

    def get(self, arena_id: str) -> GameSession | None:
        return self._sessions.get(arena_id)

    def require(self, arena_id: str) -> GameSession:
        session = self._sessions.get(arena_id)
        if session is None:
            raise UserError("There is no active Safari Zone game.")
        return session

    def admit(self, arena_id: str, player_id: str, name: str) -> AdmittedPlayer:
        session = self.require(arena_id)
        session.game.admit(player_id, name)
        token = session.grant_player(player_id)
        return AdmittedPlayer(arena_id=arena_id, player_id=player_id, player_token=token)

    def leave(self, arena_id: str, player_id: str) -> None:
        session = self.require(arena_id)
        session.game.leave(player_id)
        session.revoke_player(player_id)

    def access(self, arena_id: str, raw_token: str) -> GameAccess | None:
        session = self._sessions.get(arena_id)
        if session is None:
            return None
        return session.access(raw_token)
