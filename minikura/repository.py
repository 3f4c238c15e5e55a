"""
Lecture des spécifications désirées depuis la base
Aucune écriture : la base est la source de vérité, l'opérateur ne fait que converger
"""
from typing import List

from sqlalchemy.orm import Session, selectinload

from .models import ReverseProxyServer, Server
from .schemas import ComputeSpec, EnvVar, ProxySpec


def _env_vars(row) -> List[EnvVar]:
    return [EnvVar(key=ev.key, value=ev.value or "") for ev in (row.env_variables or [])]


def _enum_value(value):
    return getattr(value, "value", value)


def list_compute(db: Session) -> List[ComputeSpec]:
    """Retourne tous les serveurs de jeu avec leurs variables d'environnement."""
    rows = (
        db.query(Server)
        .options(selectinload(Server.env_variables))
        .order_by(Server.pk)
        .all()
    )
    return [
        ComputeSpec(
            id=row.id,
            kind=_enum_value(row.type),
            listen_port=row.listen_port,
            memory=row.memory,
            description=row.description,
            service_type=_enum_value(row.service_type),
            access_token=row.api_key,
            env_vars=_env_vars(row),
        )
        for row in rows
    ]


def list_proxies(db: Session) -> List[ProxySpec]:
    """Retourne tous les proxys avec leurs variables d'environnement."""
    rows = (
        db.query(ReverseProxyServer)
        .options(selectinload(ReverseProxyServer.env_variables))
        .order_by(ReverseProxyServer.pk)
        .all()
    )
    return [
        ProxySpec(
            id=row.id,
            kind=_enum_value(row.type),
            external_address=row.external_address,
            external_port=row.external_port,
            listen_port=row.listen_port,
            memory=row.memory,
            description=row.description,
            service_type=_enum_value(row.service_type),
            access_token=row.api_key,
            env_vars=_env_vars(row),
        )
        for row in rows
    ]


def load_compute_specs() -> List[ComputeSpec]:
    from . import database

    with database.SessionLocal() as db:
        return list_compute(db)


def load_proxy_specs() -> List[ProxySpec]:
    from . import database

    with database.SessionLocal() as db:
        return list_proxies(db)
