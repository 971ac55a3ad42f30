"""Tests for CLI commands.

Each test gets its own SQLite file and runs with notifications disabled.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from orderflow.cli.commands import cli
from orderflow.config import AppConfig, IdentityConfig
from orderflow.identity import TokenIdentityProvider
from orderflow.models.base import create_engine_for, make_session_factory
from orderflow.notify.bus import NullNotificationBus
from orderflow.orders.lifecycle import OrderLifecycleService
from orderflow.orders.types import Order, Principal, Role
from orderflow.store.sql import SqlOrderNumberAllocator, SqlOrderRepository
from tests.factories import make_juice_line, make_line

SECRET = "cli-secret"


@pytest.fixture()
def env(tmp_path: Path) -> dict[str, str]:
    return {
        "ORDERFLOW_DB_PATH": str(tmp_path / "orders.db"),
        "ORDERFLOW_NOTIFICATIONS__ENABLED": "false",
        "ORDERFLOW_IDENTITY__JWT_SECRET": SECRET,
        "ORDERFLOW_LOG_LEVEL": "WARNING",
    }


@pytest.fixture()
def runner(env: dict[str, str]) -> CliRunner:
    return CliRunner(env=env)


def _token(role: Role, user_id: str = "u-1") -> str:
    provider = TokenIdentityProvider(IdentityConfig(jwt_secret=SECRET))
    return provider.issue_token(Principal(user_id, role, role.value.title()))


MENU = {
    "items": [
        {"id": "m1", "nameEn": "Burger", "price": 100, "station": "kitchen"},
        {"id": "m2", "nameEn": "Mango juice", "price": 60, "station": "juicebar"},
    ],
    "addOns": [{"id": "a1", "nameEn": "Cheese", "price": 10}],
}


def _seed_order(db_path: str) -> Order:
    async def seed() -> Order:
        engine = create_engine_for(AppConfig(db_path=db_path).db_url)
        factory = make_session_factory(engine)
        try:
            service = OrderLifecycleService(
                SqlOrderRepository(factory),
                SqlOrderNumberAllocator(factory),
                NullNotificationBus(),
            )
            return await service.create_order(
                [make_line(), make_juice_line()],
                Principal("w-1", Role.WAITRESS, "Hanna"),
            )
        finally:
            await engine.dispose()

    return asyncio.run(seed())


@pytest.fixture()
def initialized(runner: CliRunner) -> CliRunner:
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output
    return runner


class TestCliHelp:
    def test_cli_help_shows_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("init-db", "config", "create", "show", "active", "set-status"):
            assert command in result.output
        assert "pay" in result.output
        assert "issue-token" in result.output


class TestInitDb:
    def test_creates_database_file(
        self, runner: CliRunner, env: dict[str, str]
    ) -> None:
        result = runner.invoke(cli, ["init-db"])
        assert result.exit_code == 0
        assert Path(env["ORDERFLOW_DB_PATH"]).exists()
        assert "Initialized" in result.output

    def test_is_idempotent(self, initialized: CliRunner) -> None:
        result = initialized.invoke(cli, ["init-db"])
        assert result.exit_code == 0


class TestConfigCommand:
    def test_secret_masked(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["identity"]["jwt_secret"] == "***"
        assert data["notifications"]["enabled"] is False
        assert SECRET not in result.output


class TestIssueToken:
    def test_token_round_trips(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            ["issue-token", "--user-id", "k-1", "--role", "kitchen", "--name", "Chef"],
        )
        assert result.exit_code == 0
        provider = TokenIdentityProvider(IdentityConfig(jwt_secret=SECRET))
        principal = provider.authenticate(result.output.strip())
        assert principal == Principal("k-1", Role.KITCHEN, "Chef")

    def test_unknown_role_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["issue-token", "--user-id", "x", "--role", "chef", "--name", "X"]
        )
        assert result.exit_code == 2


class TestCreate:
    @pytest.fixture()
    def menu(self, tmp_path: Path) -> str:
        path = tmp_path / "menu.json"
        path.write_text(json.dumps(MENU), encoding="utf-8")
        return str(path)

    def _create(self, runner: CliRunner, menu: str, *args: str) -> Result:
        return runner.invoke(cli, ["create", "--menu", menu, *args])

    def test_creates_priced_order(self, initialized: CliRunner, menu: str) -> None:
        result = self._create(
            initialized,
            menu,
            "--item",
            "m1:2:a1",
            "--item",
            "m2",
            "--customer-name",
            "Abebe",
            "--token",
            _token(Role.WAITRESS),
        )
        assert result.exit_code == 0, result.output
        assert "Order #001 created" in result.output
        assert "Total: 280  Stations: juicebar, kitchen" in result.output

        kitchen = _token(Role.KITCHEN)
        result = initialized.invoke(cli, ["show", "001", "--token", kitchen])
        assert result.exit_code == 0, result.output
        assert "#001" in result.output
        assert "2 x Burger [kitchen] 100 + Cheese" in result.output
        assert "1 x Mango juice [juicebar] 60" in result.output

    def test_unknown_item(self, initialized: CliRunner, menu: str) -> None:
        result = self._create(
            initialized, menu, "--item", "m9", "--token", _token(Role.WAITRESS)
        )
        assert result.exit_code == 1
        assert "validation: Unknown menu item: m9" in result.output

    def test_bad_quantity(self, initialized: CliRunner, menu: str) -> None:
        result = self._create(
            initialized, menu, "--item", "m1:two", "--token", _token(Role.WAITRESS)
        )
        assert result.exit_code == 2
        assert "quantity is not an integer" in result.output

    def test_zero_quantity(self, initialized: CliRunner, menu: str) -> None:
        result = self._create(
            initialized, menu, "--item", "m1:0", "--token", _token(Role.OWNER)
        )
        assert result.exit_code == 1
        assert "validation" in result.output

    def test_station_role_cannot_create(
        self, initialized: CliRunner, menu: str
    ) -> None:
        result = self._create(
            initialized, menu, "--item", "m1", "--token", _token(Role.KITCHEN)
        )
        assert result.exit_code == 1
        assert "permission_denied" in result.output

    def test_invalid_menu_file(self, initialized: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "menu.json"
        path.write_text("{not json", encoding="utf-8")
        result = self._create(
            initialized, str(path), "--item", "m1", "--token", _token(Role.OWNER)
        )
        assert result.exit_code == 1
        assert "menu is not valid JSON" in result.output


class TestShow:
    def test_unknown_number(self, initialized: CliRunner) -> None:
        result = initialized.invoke(cli, ["show", "404", "--token", _token(Role.OWNER)])
        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_seeded_order(self, initialized: CliRunner, env: dict[str, str]) -> None:
        order = _seed_order(env["ORDERFLOW_DB_PATH"])
        result = initialized.invoke(
            cli, ["show", order.order_number, "--token", _token(Role.JUICEBAR)]
        )
        assert result.exit_code == 0, result.output
        assert order.id in result.output


class TestActive:
    def test_no_orders(self, initialized: CliRunner) -> None:
        result = initialized.invoke(cli, ["active", "--token", _token(Role.KITCHEN)])
        assert result.exit_code == 0
        assert "No active orders." in result.output

    def test_lists_seeded_order(
        self, initialized: CliRunner, env: dict[str, str]
    ) -> None:
        order = _seed_order(env["ORDERFLOW_DB_PATH"])
        result = initialized.invoke(cli, ["active", "--token", _token(Role.OWNER)])
        assert result.exit_code == 0
        assert "Active orders (1):" in result.output
        assert order.id in result.output

    def test_missing_token(self, initialized: CliRunner) -> None:
        result = initialized.invoke(cli, ["active"])
        assert result.exit_code == 1
        assert "unauthenticated" in result.output


class TestSetStatusAndPay:
    def test_station_progress_then_payment(
        self, initialized: CliRunner, env: dict[str, str]
    ) -> None:
        order = _seed_order(env["ORDERFLOW_DB_PATH"])
        owner = _token(Role.OWNER)

        result = initialized.invoke(
            cli, ["set-status", order.id, "kitchen", "ready", "--token", owner]
        )
        assert result.exit_code == 0, result.output
        assert "Overall status: pending" in result.output

        result = initialized.invoke(
            cli, ["set-status", order.id, "juicebar", "ready", "--token", owner]
        )
        assert "Overall status: ready" in result.output

        result = initialized.invoke(
            cli,
            [
                "pay",
                order.id,
                "cash",
                "--amount-received",
                "200",
                "--change",
                "40",
                "--token",
                _token(Role.WAITRESS),
            ],
        )
        assert result.exit_code == 0, result.output
        assert f"Order #{order.order_number} paid by cash" in result.output

        result = initialized.invoke(cli, ["active", "--token", owner])
        assert "No active orders." in result.output

    def test_waitress_cannot_set_status(
        self, initialized: CliRunner, env: dict[str, str]
    ) -> None:
        order = _seed_order(env["ORDERFLOW_DB_PATH"])
        result = initialized.invoke(
            cli,
            [
                "set-status",
                order.id,
                "juicebar",
                "ready",
                "--token",
                _token(Role.WAITRESS),
            ],
        )
        assert result.exit_code == 1
        assert "permission_denied" in result.output

    def test_unknown_order(self, initialized: CliRunner) -> None:
        result = initialized.invoke(
            cli,
            [
                "set-status",
                "missing",
                "kitchen",
                "ready",
                "--token",
                _token(Role.OWNER),
            ],
        )
        assert result.exit_code == 1
        assert "not_found" in result.output

    def test_bad_amount(self, initialized: CliRunner, env: dict[str, str]) -> None:
        order = _seed_order(env["ORDERFLOW_DB_PATH"])
        result = initialized.invoke(
            cli,
            [
                "pay",
                order.id,
                "cash",
                "--amount-received",
                "lots",
                "--token",
                _token(Role.WAITRESS),
            ],
        )
        assert result.exit_code == 2
