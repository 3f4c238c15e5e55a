"""
Modèles SQLAlchemy pour Minikura
L'opérateur ne fait que lire ces tables : l'API externe les alimente
"""
import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class ServerType(enum.Enum):
    STATEFUL = "STATEFUL"
    STATELESS = "STATELESS"


class ReverseProxyServerType(enum.Enum):
    VELOCITY = "VELOCITY"
    BUNGEECORD = "BUNGEECORD"


# Mode d'exposition réseau, traduit en type de Service par k8s_utils.map_service_type
class ServiceType(enum.Enum):
    CLUSTER_IP = "CLUSTER_IP"
    NODE_PORT = "NODE_PORT"
    LOAD_BALANCER = "LOAD_BALANCER"


# Modèle pour les serveurs de jeu (instances de calcul)
class Server(Base):
    __tablename__ = "server"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)  # identifiant externe, immuable
    type = Column(Enum(ServerType), nullable=False, default=ServerType.STATELESS)
    description = Column(String(255), nullable=True)
    listen_port = Column(Integer, nullable=False, default=25565)
    memory = Column(String(20), nullable=False, default="1G")
    service_type = Column(Enum(ServiceType), nullable=False, default=ServiceType.CLUSTER_IP)
    api_key = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    env_variables = relationship(
        "CustomEnvironmentVariable",
        back_populates="server",
        cascade="all, delete-orphan",
        order_by="CustomEnvironmentVariable.id",
    )


# Modèle pour les proxys (Velocity / BungeeCord)
class ReverseProxyServer(Base):
    __tablename__ = "reverse_proxy_server"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    type = Column(Enum(ReverseProxyServerType), nullable=False, default=ReverseProxyServerType.VELOCITY)
    description = Column(String(255), nullable=True)
    external_address = Column(String(255), nullable=False)
    external_port = Column(Integer, nullable=False)
    listen_port = Column(Integer, nullable=False, default=25577)
    memory = Column(String(20), nullable=False, default="512M")
    service_type = Column(Enum(ServiceType), nullable=False, default=ServiceType.LOAD_BALANCER)
    api_key = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    env_variables = relationship(
        "CustomEnvironmentVariable",
        back_populates="reverse_proxy_server",
        cascade="all, delete-orphan",
        order_by="CustomEnvironmentVariable.id",
    )


# Variables d'environnement personnalisées (clé unique par propriétaire)
class CustomEnvironmentVariable(Base):
    __tablename__ = "custom_environment_variable"
    __table_args__ = (
        UniqueConstraint("server_pk", "key", name="uq_env_server_key"),
        UniqueConstraint("reverse_proxy_server_pk", "key", name="uq_env_proxy_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False)
    value = Column(String(1024), nullable=False, default="")
    server_pk = Column(Integer, ForeignKey("server.pk", ondelete="CASCADE"), nullable=True)
    reverse_proxy_server_pk = Column(
        Integer, ForeignKey("reverse_proxy_server.pk", ondelete="CASCADE"), nullable=True
    )

    server = relationship("Server", back_populates="env_variables")
    reverse_proxy_server = relationship("ReverseProxyServer", back_populates="env_variables")
