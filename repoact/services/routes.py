"""Route lookups: which repository and channel a webhook path belongs to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from repoact.db import SessionLocal
from repoact.errors import RouteNotFound, RouteRecordInvalid
from repoact.models import RouteRecord


@dataclass(frozen=True)
class Route:
    repository_fullpath: str
    channel_id: str


class RouteStore:
    """Point get/put over the route table. No scans."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, route_id: str) -> Optional[Route]:
        with self._session_factory() as db:
            record = db.get(RouteRecord, route_id)
            if record is None:
                return None
            for key in ("repository_fullpath", "channel_id"):
                if not getattr(record, key):
                    raise RouteRecordInvalid(route_id, key)
            return Route(
                repository_fullpath=record.repository_fullpath,
                channel_id=record.channel_id,
            )

    def put(self, route_id: str, route: Route) -> None:
        with self._session_factory() as db:
            _upsert(db, route_id, route)
            db.commit()


def _upsert(db: Session, route_id: str, route: Route) -> None:
    record = db.get(RouteRecord, route_id)
    if record is None:
        db.add(
            RouteRecord(
                path=route_id,
                repository_fullpath=route.repository_fullpath,
                channel_id=route.channel_id,
            )
        )
    else:
        record.repository_fullpath = route.repository_fullpath
        record.channel_id = route.channel_id


def resolve_route(store: RouteStore, route_id: str) -> Route:
    """Like :meth:`RouteStore.get`, but a missing route is an error."""
    route = store.get(route_id)
    if route is None:
        raise RouteNotFound(route_id)
    return route


def get_route_store() -> RouteStore:
    """FastAPI dependency backed by the configured database."""
    return RouteStore(SessionLocal)
