"""
Service layer. build_services() wires every component once at startup;
request handlers reach them through the app's extensions, never through
module-level singletons.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping, Optional

from models.base_model import utcnow
from models.db_storage import DBStorage
from services.analytics_service import AnalyticsService
from services.credential_store import CredentialStore
from services.email_service import AccountMailer, ConsoleMailer, MailDispatcher, SmtpMailer
from services.health_service import HealthService
from services.refresh_token_store import RefreshTokenStore
from services.session_service import SessionService
from services.species_service import SpeciesService
from services.token_issuer import TokenIssuer
from services.tree_service import TreeService
from services.user_service import UserService


@dataclass
class Services:
    storage: DBStorage
    mail: MailDispatcher
    credentials: CredentialStore
    refresh_tokens: RefreshTokenStore
    tokens: TokenIssuer
    sessions: SessionService
    users: UserService
    species: SpeciesService
    trees: TreeService
    health: HealthService
    analytics: AnalyticsService


def build_mailer(config: Mapping):
    if config.get("MAIL_HOST"):
        return SmtpMailer(
            host=config["MAIL_HOST"],
            port=int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            sender=config.get("MAIL_FROM", "noreply@treenetra.com"),
        )
    return ConsoleMailer()


def build_services(
    config: Mapping,
    storage: Optional[DBStorage] = None,
    dispatcher: Optional[MailDispatcher] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    if storage is None:
        storage = DBStorage(config["DATABASE_URL"], echo=bool(config.get("SQLALCHEMY_ECHO", False)))
        storage.reload()
    if dispatcher is None:
        dispatcher = MailDispatcher(
            build_mailer(config),
            ThreadPoolExecutor(max_workers=int(config.get("MAIL_WORKERS", 2)), thread_name_prefix="mail"),
        )

    credentials = CredentialStore(storage)
    refresh_tokens = RefreshTokenStore(storage, config["JWT_REFRESH_EXPIRES"], clock=clock)
    tokens = TokenIssuer(
        refresh_tokens,
        secret=config["JWT_SECRET"],
        access_lifetime=config["JWT_ACCESS_EXPIRES"],
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
        issuer=config.get("JWT_ISSUER", "treenetra-api"),
        clock=clock,
    )
    sessions = SessionService(
        credentials,
        refresh_tokens,
        tokens,
        AccountMailer(dispatcher, app_url=config.get("APP_URL", "http://localhost:8000")),
        clock=clock,
        max_login_attempts=int(config.get("MAX_LOGIN_ATTEMPTS", 5)),
        lock_duration=config["ACCOUNT_LOCK_DURATION"],
        reset_expires=config["PASSWORD_RESET_EXPIRES"],
    )
    return Services(
        storage=storage,
        mail=dispatcher,
        credentials=credentials,
        refresh_tokens=refresh_tokens,
        tokens=tokens,
        sessions=sessions,
        users=UserService(storage, credentials, refresh_tokens),
        species=SpeciesService(storage),
        trees=TreeService(storage),
        health=HealthService(storage),
        analytics=AnalyticsService(storage, clock=clock),
    )
