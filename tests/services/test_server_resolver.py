import pytest

from containerrebuild.errors import RebuildError
from containerrebuild.services.server_resolver import InventoryServerResolver


def _write_inventory(tmp_path, content):
    inventory = tmp_path / "servers.yml"
    inventory.write_text(content, encoding="utf-8")
    return str(inventory)


def test_resolve_returns_enabled_server(tmp_path):
    path = _write_inventory(
        tmp_path,
        "servers:\n"
        "  - ip: 10.0.0.1\n"
        "    ssh_port: 2222\n"
        "    ssh_pwd: secret\n",
    )

    server = InventoryServerResolver(path).resolve("10.0.0.1")

    assert server is not None
    assert server.port == 2222
    assert server.password == "secret"
    assert server.username == "root"
    assert server.enabled is True


def test_resolve_ignores_disabled_server(tmp_path):
    path = _write_inventory(
        tmp_path,
        "servers:\n"
        "  - ip: 10.0.0.1\n"
        "    ssh_pwd: secret\n"
        "    status: disabled\n",
    )

    assert InventoryServerResolver(path).resolve("10.0.0.1") is None


def test_resolve_unknown_address_returns_none(tmp_path):
    path = _write_inventory(tmp_path, "servers:\n  - ip: 10.0.0.1\n    ssh_pwd: x\n")

    assert InventoryServerResolver(path).resolve("10.0.0.9") is None


def test_default_username_applies_when_entry_has_none(tmp_path):
    path = _write_inventory(tmp_path, "servers:\n  - ip: 10.0.0.1\n    ssh_pwd: x\n")

    server = InventoryServerResolver(path, default_username="admin").resolve("10.0.0.1")

    assert server.username == "admin"


def test_invalid_inventory_raises(tmp_path):
    path = _write_inventory(tmp_path, "- just\n- a list\n")

    with pytest.raises(RebuildError, match="servers"):
        InventoryServerResolver(path).resolve("10.0.0.1")


def test_missing_inventory_raises(tmp_path):
    with pytest.raises(RebuildError, match="not found"):
        InventoryServerResolver(str(tmp_path / "missing.yml")).resolve("10.0.0.1")
