import os

os.environ["DB_URL"] = "sqlite://"
os.environ.pop("SECRETS_FILE", None)

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from repoact.db import Base
from repoact.services.routes import RouteStore
from repoact.services.secrets import Secrets

from helpers import WEBHOOK_SECRET


@pytest.fixture
def route_store() -> RouteStore:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return RouteStore(sessionmaker(bind=engine, autoflush=False, autocommit=False))


@pytest.fixture(scope="session")
def private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def secrets(private_key_pem: str) -> Secrets:
    return Secrets(
        slack_bot_token="xoxb-test",
        github_app_id="1234",
        github_app_installation_id="5678",
        github_webhook_verification_secret=WEBHOOK_SECRET,
        github_app_pem=private_key_pem,
        slack_app_signing_secret="slack-signing-secret",
    )
