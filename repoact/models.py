"""models for DBs"""

from __future__ import annotations

from sqlalchemy import Column, String

from repoact.config import settings

from .db import Base


class RouteRecord(Base):
    """Webhook route id → repository and Slack channel."""

    __tablename__ = settings.route_table_name
    path = Column(String, primary_key=True)
    repository_fullpath = Column(String, nullable=False)
    channel_id = Column(String, nullable=False)
