"""
Schémas Pydantic pour Minikura
Spécifications désirées lues en base et réponses de l'API de statut
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ComputeKind(str, Enum):
    STATEFUL = "STATEFUL"
    STATELESS = "STATELESS"


class ProxyKind(str, Enum):
    VELOCITY = "VELOCITY"
    BUNGEECORD = "BUNGEECORD"


class EnvVar(BaseModel):
    key: str = Field(..., min_length=1)
    value: str = ""


# Spécification désirée d'un serveur de jeu
class ComputeSpec(BaseModel):
    id: str = Field(..., min_length=1)
    kind: ComputeKind = ComputeKind.STATELESS
    listen_port: int = Field(25565, ge=1, le=65535)
    memory: Optional[str] = None
    description: Optional[str] = None
    service_type: Optional[str] = None
    access_token: str
    env_vars: List[EnvVar] = Field(default_factory=list)

    class Config:
        from_attributes = True


# Spécification désirée d'un proxy
class ProxySpec(BaseModel):
    id: str = Field(..., min_length=1)
    kind: ProxyKind = ProxyKind.VELOCITY
    external_address: str
    external_port: int = Field(..., ge=1, le=65535)
    listen_port: int = Field(25577, ge=1, le=65535)
    memory: Optional[str] = None
    description: Optional[str] = None
    service_type: Optional[str] = None
    access_token: str
    env_vars: List[EnvVar] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ====== Statut de l'opérateur ======
class CycleResult(BaseModel):
    started_at: datetime
    duration_ms: float
    succeeded: bool
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    error: Optional[str] = None


class ControllerStatus(BaseModel):
    name: str
    state: str
    cached: int
    interval_seconds: float
    last_cycle: Optional[CycleResult] = None


class ReflectorStatus(BaseModel):
    state: str
    interval_seconds: float
    reflected: Dict[str, int] = Field(default_factory=dict)
    last_cycle: Optional[CycleResult] = None


class OperatorStatus(BaseModel):
    version: str
    namespace: str
    crd_reflection: bool
    controllers: List[ControllerStatus] = Field(default_factory=list)
    reflector: Optional[ReflectorStatus] = None
