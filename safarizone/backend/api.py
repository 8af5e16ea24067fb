"""FastAPI endpoints for zone configuration, Safari games and websocket sync."""

from __future__ import annotations

import asyncio
from collections import defaultdict
import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .clock import AsyncioClock, Clock
from .config import BackendSettings, load_settings
from .errors import ConfigurationError, InvariantViolation, SafariError
from .game import DEFAULT_BALLS, ArenaRegistry, GameOptions, SafariGame
from .models import GameAccess, Role
from .modes import TournamentRules
from .rng import RandomSource, SystemRandomSource
from .security import hash_token, tokens_match
from .sessions import GameSession, SessionRegistry
from .species import SpeciesCatalog, build_default_catalog
from .store import ZoneMapStore, create_store
from .zones import make_encounter_spec

logger = logging.getLogger(__name__)


class AddZoneRequest(BaseModel):
    token: str = Field(min_length=1)
    zone_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)


class StartZoneRequest(BaseModel):
    token: str = Field(min_length=1)
    zone_id: str = Field(min_length=1, max_length=64)


class AddEncounterRequest(BaseModel):
    token: str = Field(min_length=1)
    species: str = Field(min_length=1, max_length=64)
    min_level: int = Field(ge=1, le=100)
    max_level: int = Field(ge=1, le=100)
    rarity: int = Field(gt=0)


class ZoneMapResponse(BaseModel):
    zone_map: dict[str, Any] | None


class OpenGameRequest(BaseModel):
    token: str = Field(min_length=1)
    duration_minutes: int
    mode: str = "points"
    points_for_catch: int = 10
    bonus_for_rarity: bool = True
    bonus_for_level: bool = True
    targets: list[str] = Field(default_factory=list)
    balls: int = DEFAULT_BALLS


class OpenGameResponse(BaseModel):
    arena_id: str
    game_id: str
    host_token: str


class AdmitRequest(BaseModel):
    player_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)


class AdmitResponse(BaseModel):
    player_id: str
    player_token: str


class TokenEnvelope(BaseModel):
    token: str = Field(min_length=1)


class ActionEnvelope(BaseModel):
    token: str = Field(min_length=1)
    action: str = Field(min_length=1, max_length=16)


class DisqualifyEnvelope(BaseModel):
    token: str = Field(min_length=1)
    player_id: str = Field(min_length=1)


class ViewResponse(BaseModel):
    view: dict[str, Any]


class LeaderboardResponse(BaseModel):
    leaderboard: list[dict[str, Any]]


class ArenaWebSocketHub:
    def __init__(self) -> None:
        self._connections: dict[str, dict[WebSocket, str | None]] = defaultdict(dict)
        self._pending: set[asyncio.Task[None]] = set()

    async def connect(self, arena_id: str, websocket: WebSocket, player_id: str | None) -> None:
        await websocket.accept()
        self._connections[arena_id][websocket] = player_id

    def disconnect(self, arena_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(arena_id)
        if connections is None:
            return
        connections.pop(websocket, None)
        if not connections:
            self._connections.pop(arena_id, None)

    def has_player(self, arena_id: str, player_id: str) -> bool:
        return player_id in self._connections.get(arena_id, {}).values()

    async def send_view(self, websocket: WebSocket, game: SafariGame, player_id: str | None) -> None:
        if player_id is not None and game.roster.participant(player_id) is not None:
            view = game.player_view(player_id)
        else:
            view = game.public_view()
        await websocket.send_json({"type": "state.full", "status": game.status.value, "view": view})

    async def broadcast(self, game: SafariGame) -> None:
        stale_connections: list[WebSocket] = []
        for websocket, player_id in list(self._connections.get(game.arena_id, {}).items()):
            try:
                await self.send_view(websocket, game, player_id)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(arena_id=game.arena_id, websocket=websocket)

    def schedule_broadcast(self, game: SafariGame) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if game.arena_id not in self._connections:
            return
        task = loop.create_task(self.broadcast(game))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def create_app(
    store: ZoneMapStore | None = None,
    catalog: SpeciesCatalog | None = None,
    settings: BackendSettings | None = None,
    clock: Clock | None = None,
    rng: RandomSource | None = None,
) -> FastAPI:
    app = FastAPI(title="Safari Zone API", version="0.3.0")
    local_settings = settings if settings is not None else load_settings()
    zone_store = store if store is not None else create_store(local_settings.database_url)
    species_catalog = catalog if catalog is not None else build_default_catalog()
    arenas = ArenaRegistry(
        catalog=species_catalog,
        rng=rng if rng is not None else SystemRandomSource(),
        clock=clock if clock is not None else AsyncioClock(),
    )
    sessions = SessionRegistry(arenas=arenas, server_salt=local_settings.server_salt)
    admin_token_hash = hash_token(local_settings.admin_token, local_settings.server_salt)
    websocket_hub = ArenaWebSocketHub()
    app.state.websocket_hub = websocket_hub
    app.state.sessions = sessions

    @app.exception_handler(SafariError)
    async def safari_error_handler(request: Request, exc: SafariError) -> JSONResponse:
        status_code = 409
        if isinstance(exc, ConfigurationError):
            logger.warning("Rejected Safari configuration on %s: %s", request.url.path, exc)
            status_code = 422
        elif isinstance(exc, InvariantViolation):
            logger.error("Invariant violation while handling %s: %s", request.url.path, exc)
            status_code = 500
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    def get_store() -> ZoneMapStore:
        return zone_store

    def require_admin(token: str) -> None:
        if not tokens_match(token, admin_token_hash, local_settings.server_salt):
            raise HTTPException(status_code=403, detail="Admin token invalid")

    def require_session(arena_id: str) -> GameSession:
        session = sessions.get(arena_id)
        if session is None:
            raise HTTPException(status_code=404, detail="No Safari game in this arena")
        return session

    def require_access(session: GameSession, token: str, role: Role) -> GameAccess:
        access = session.access(token)
        if access is None or access.role is not role:
            raise HTTPException(status_code=403, detail="Token not allowed")
        return access

    def zone_map_payload(local_store: ZoneMapStore, arena_id: str) -> ZoneMapResponse:
        zone_map = local_store.get_zone_map(arena_id)
        return ZoneMapResponse(zone_map=zone_map.to_dict() if zone_map is not None else None)

    @app.get("/api/arenas/{arena_id}/zones", response_model=ZoneMapResponse)
    def list_zones(arena_id: str, local_store: ZoneMapStore = Depends(get_store)) -> ZoneMapResponse:
        return zone_map_payload(local_store, arena_id)

    @app.post("/api/arenas/{arena_id}/zones", response_model=ZoneMapResponse)
    def add_zone(
        arena_id: str,
        payload: AddZoneRequest,
        local_store: ZoneMapStore = Depends(get_store),
    ) -> ZoneMapResponse:
        require_admin(payload.token)
        local_store.add_zone(arena_id=arena_id, zone_id=payload.zone_id, name=payload.name)
        return zone_map_payload(local_store, arena_id)

    @app.put("/api/arenas/{arena_id}/zones/start", response_model=ZoneMapResponse)
    def set_start_zone(
        arena_id: str,
        payload: StartZoneRequest,
        local_store: ZoneMapStore = Depends(get_store),
    ) -> ZoneMapResponse:
        require_admin(payload.token)
        local_store.set_start_zone(arena_id=arena_id, zone_id=payload.zone_id)
        return zone_map_payload(local_store, arena_id)

    @app.post("/api/arenas/{arena_id}/zones/{zone_id}/encounters", response_model=ZoneMapResponse)
    def add_encounter(
        arena_id: str,
        zone_id: str,
        payload: AddEncounterRequest,
        local_store: ZoneMapStore = Depends(get_store),
    ) -> ZoneMapResponse:
        require_admin(payload.token)
        spec = make_encounter_spec(
            species_catalog,
            species=payload.species,
            min_level=payload.min_level,
            max_level=payload.max_level,
            rarity=payload.rarity,
        )
        local_store.add_encounter(arena_id=arena_id, zone_id=zone_id, spec=spec)
        return zone_map_payload(local_store, arena_id)

    @app.delete("/api/arenas/{arena_id}/zones/{zone_id}/encounters/{species}", response_model=ZoneMapResponse)
    def remove_encounter(
        arena_id: str,
        zone_id: str,
        species: str,
        token: str = Query(min_length=1),
        local_store: ZoneMapStore = Depends(get_store),
    ) -> ZoneMapResponse:
        require_admin(token)
        local_store.remove_encounter(arena_id=arena_id, zone_id=zone_id, species=species)
        return zone_map_payload(local_store, arena_id)

    @app.post("/api/arenas/{arena_id}/game", response_model=OpenGameResponse)
    async def open_game(
        arena_id: str,
        payload: OpenGameRequest,
        local_store: ZoneMapStore = Depends(get_store),
    ) -> OpenGameResponse:
        require_admin(payload.token)
        options = GameOptions(
            duration_minutes=payload.duration_minutes,
            mode=payload.mode,
            rules=TournamentRules(
                points_for_catch=payload.points_for_catch,
                bonus_for_rarity=payload.bonus_for_rarity,
                bonus_for_level=payload.bonus_for_level,
            ),
            targets=tuple(payload.targets),
            balls=payload.balls,
        )
        opened = sessions.open_game(arena_id, local_store.get_zone_map(arena_id), options)
        session = sessions.require(arena_id)
        session.game.on_update = websocket_hub.schedule_broadcast
        return OpenGameResponse(arena_id=opened.arena_id, game_id=opened.game_id, host_token=opened.host_token)

    @app.get("/api/arenas/{arena_id}/game", response_model=ViewResponse)
    def get_game(arena_id: str) -> ViewResponse:
        return ViewResponse(view=require_session(arena_id).game.public_view())

    @app.get("/api/arenas/{arena_id}/game/leaderboard", response_model=LeaderboardResponse)
    def get_leaderboard(arena_id: str) -> LeaderboardResponse:
        return LeaderboardResponse(leaderboard=require_session(arena_id).game.leaderboard())

    @app.post("/api/arenas/{arena_id}/game/players", response_model=AdmitResponse)
    async def admit_player(arena_id: str, payload: AdmitRequest) -> AdmitResponse:
        require_session(arena_id)
        admitted = sessions.admit(arena_id, player_id=payload.player_id, name=payload.name)
        return AdmitResponse(player_id=admitted.player_id, player_token=admitted.player_token)

    @app.get("/api/arenas/{arena_id}/game/players/{player_id}", response_model=ViewResponse)
    def get_player_view(arena_id: str, player_id: str, token: str = Query(min_length=1)) -> ViewResponse:
        session = require_session(arena_id)
        access = require_access(session, token, Role.PLAYER)
        if access.player_id != player_id:
            raise HTTPException(status_code=403, detail="Token not allowed")
        return ViewResponse(view=session.game.player_view(player_id))

    @app.delete("/api/arenas/{arena_id}/game/players/{player_id}", response_model=ViewResponse)
    async def leave_lobby(arena_id: str, player_id: str, token: str = Query(min_length=1)) -> ViewResponse:
        session = require_session(arena_id)
        access = require_access(session, token, Role.PLAYER)
        if access.player_id != player_id:
            raise HTTPException(status_code=403, detail="Token not allowed")
        sessions.leave(arena_id, player_id)
        return ViewResponse(view=session.game.public_view())

    @app.post("/api/arenas/{arena_id}/game/begin", response_model=ViewResponse)
    async def begin_game(arena_id: str, payload: TokenEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        require_access(session, payload.token, Role.HOST)
        session.game.begin()
        return ViewResponse(view=session.game.public_view())

    @app.post("/api/arenas/{arena_id}/game/end", response_model=ViewResponse)
    async def end_game(arena_id: str, payload: TokenEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        require_access(session, payload.token, Role.HOST)
        session.game.end()
        return ViewResponse(view=session.game.public_view())

    @app.post("/api/arenas/{arena_id}/game/disqualify", response_model=ViewResponse)
    async def disqualify_player(arena_id: str, payload: DisqualifyEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        require_access(session, payload.token, Role.HOST)
        session.game.disqualify(payload.player_id, by="the host")
        return ViewResponse(view=session.game.public_view())

    @app.post("/api/arenas/{arena_id}/game/actions", response_model=ViewResponse)
    async def post_action(arena_id: str, payload: ActionEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        access = require_access(session, payload.token, Role.PLAYER)
        assert access.player_id is not None
        session.game.perform_action(access.player_id, payload.action)
        return ViewResponse(view=session.game.player_view(access.player_id))

    @app.post("/api/arenas/{arena_id}/game/disconnect", response_model=ViewResponse)
    async def post_disconnect(arena_id: str, payload: TokenEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        access = require_access(session, payload.token, Role.PLAYER)
        assert access.player_id is not None
        session.game.disconnect(access.player_id)
        return ViewResponse(view=session.game.player_view(access.player_id))

    @app.post("/api/arenas/{arena_id}/game/resume", response_model=ViewResponse)
    async def post_resume(arena_id: str, payload: TokenEnvelope) -> ViewResponse:
        session = require_session(arena_id)
        access = require_access(session, payload.token, Role.PLAYER)
        assert access.player_id is not None
        session.game.resume(access.player_id)
        return ViewResponse(view=session.game.player_view(access.player_id))

    @app.websocket("/ws/arenas/{arena_id}")
    async def arena_ws(websocket: WebSocket, arena_id: str) -> None:
        token = websocket.query_params.get("token")
        access = sessions.access(arena_id, token) if token else None
        session = sessions.get(arena_id)
        if access is None or session is None:
            await websocket.close(code=1008)
            return

        await websocket_hub.connect(arena_id=arena_id, websocket=websocket, player_id=access.player_id)
        await websocket_hub.send_view(websocket=websocket, game=session.game, player_id=access.player_id)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(arena_id=arena_id, websocket=websocket)
            if access.player_id is not None and not websocket_hub.has_player(arena_id, access.player_id):
                session.game.disconnect(access.player_id)

    return app


app = create_app()
