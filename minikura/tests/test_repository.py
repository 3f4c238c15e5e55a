"""Tests for reading desired specs from the database."""
from minikura.models import (
    CustomEnvironmentVariable,
    ReverseProxyServer,
    ReverseProxyServerType,
    Server,
    ServerType,
    ServiceType,
)
from minikura.repository import list_compute, list_proxies, load_compute_specs, load_proxy_specs
from minikura.schemas import ComputeKind, ProxyKind


def _server(db, server_id, **kwargs) -> Server:
    row = Server(id=server_id, api_key=f"key-{server_id}", **kwargs)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def test_list_compute_maps_rows(db):
    row = _server(db, "lobby-1", type=ServerType.STATEFUL, memory="2G", service_type=ServiceType.NODE_PORT)
    row.env_variables.append(CustomEnvironmentVariable(key="MOTD", value="hello"))
    row.env_variables.append(CustomEnvironmentVariable(key="DIFFICULTY", value="hard"))
    db.commit()

    [spec] = list_compute(db)

    assert spec.id == "lobby-1"
    assert spec.kind == ComputeKind.STATEFUL
    assert spec.memory == "2G"
    assert spec.listen_port == 25565
    assert spec.service_type == "NODE_PORT"
    assert spec.access_token == "key-lobby-1"
    assert [(ev.key, ev.value) for ev in spec.env_vars] == [("MOTD", "hello"), ("DIFFICULTY", "hard")]


def test_list_compute_keeps_insertion_order(db):
    _server(db, "b")
    _server(db, "a")
    assert [spec.id for spec in list_compute(db)] == ["b", "a"]


def test_list_proxies(db):
    db.add(
        ReverseProxyServer(
            id="hub",
            type=ReverseProxyServerType.BUNGEECORD,
            external_address="mc.example.org",
            external_port=25565,
            api_key="proxy-key",
        )
    )
    db.commit()

    [spec] = list_proxies(db)

    assert spec.kind == ProxyKind.BUNGEECORD
    assert spec.external_address == "mc.example.org"
    assert spec.listen_port == 25577
    assert spec.memory == "512M"
    assert spec.service_type == "LOAD_BALANCER"
    assert spec.env_vars == []


def test_loaders_open_their_own_session(db):
    _server(db, "lobby-1")
    assert [spec.id for spec in load_compute_specs()] == ["lobby-1"]
    assert load_proxy_specs() == []
