"""Click CLI commands for orderflow."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TypeVar

import click

from orderflow.config import AppConfig
from orderflow.identity import TokenIdentityProvider
from orderflow.models.base import Base, create_engine_for, make_session_factory
from orderflow.notify.bus import NotificationBus, NullNotificationBus
from orderflow.orders.catalog import LineRequest, StaticCatalog, build_lines
from orderflow.orders.errors import OrderError
from orderflow.orders.lifecycle import OrderLifecycleService
from orderflow.orders.types import (
    CustomerInfo,
    Order,
    PaymentDetails,
    Principal,
    Role,
)
from orderflow.store.sql import SqlOrderNumberAllocator, SqlOrderRepository
from orderflow.utils.logging import set_request_id, setup_logging

_T = TypeVar("_T")


@click.group()
def cli() -> None:
    """orderflow: kitchen + juice bar order lifecycle."""


@asynccontextmanager
async def _service(config: AppConfig) -> AsyncIterator[OrderLifecycleService]:
    """Wire the SQL store and configured bus; dispose both on exit."""
    from orderflow.notify.redis_bus import RedisNotificationBus

    engine = create_engine_for(config.db_url, config.db_busy_timeout_ms)
    session_factory = make_session_factory(engine)
    bus: NotificationBus
    redis_bus: RedisNotificationBus | None = None
    if config.notifications.enabled:
        redis_bus = RedisNotificationBus.from_config(config.notifications)
        bus = redis_bus
    else:
        bus = NullNotificationBus()

    try:
        yield OrderLifecycleService(
            SqlOrderRepository(session_factory),
            SqlOrderNumberAllocator(session_factory, config.order_number_min_digits),
            bus,
            concurrency=config.concurrency,
        )
    finally:
        if redis_bus is not None:
            await redis_bus.close()
        await engine.dispose()


def _run(
    config: AppConfig,
    action: Callable[[OrderLifecycleService], Awaitable[_T]],
) -> _T:
    async def runner() -> _T:
        async with _service(config) as service:
            return await action(service)

    setup_logging(config.log_level, config.log_format)
    set_request_id()
    try:
        return asyncio.run(runner())
    except OrderError as e:
        raise click.ClickException(f"{e.category}: {e}") from e


def _authenticate(config: AppConfig, token: str | None) -> Principal:
    try:
        return TokenIdentityProvider(config.identity).authenticate(token)
    except OrderError as e:
        raise click.ClickException(f"{e.category}: {e}") from e


def _decimal_option(value: str | None, name: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise click.BadParameter(f"not a number: {value}", param_hint=name) from e


def _parse_item(value: str) -> LineRequest:
    """``ID[:QTY[:ADDON,...]]`` -> LineRequest. Quantity defaults to 1."""
    parts = value.split(":")
    if not parts[0] or len(parts) > 3:
        raise click.BadParameter(f"expected ID[:QTY[:ADDON,...]], got {value}")
    quantity = 1
    if len(parts) > 1 and parts[1]:
        try:
            quantity = int(parts[1])
        except ValueError as e:
            raise click.BadParameter(f"quantity is not an integer: {value}") from e
    add_on_ids = tuple(a for a in parts[2].split(",") if a) if len(parts) > 2 else ()
    return LineRequest(parts[0], quantity, add_on_ids)


def _parse_items(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[LineRequest]:
    return [_parse_item(v) for v in values]


def _load_catalog(path: str) -> StaticCatalog:
    try:
        return StaticCatalog.from_json_file(path)
    except OrderError as e:
        raise click.ClickException(f"{e.category}: {e}") from e
    except ValueError as e:
        raise click.ClickException(f"validation: menu is not valid JSON: {e}") from e


def _format_order_row(order: Order) -> str:
    kitchen = order.kitchen_status.value if order.kitchen_status else "-"
    juicebar = order.juicebar_status.value if order.juicebar_status else "-"
    return (
        f"  #{order.order_number:<6} {order.overall_status.value:<11} "
        f"kitchen={kitchen:<10} juicebar={juicebar:<10} "
        f"total={order.total}  {order.waitress_name}  {order.id}"
    )


@cli.command("init-db")
def init_db() -> None:
    """Create the order schema and seed the order number counter."""
    config = AppConfig()
    Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def _init() -> None:
        engine = create_engine_for(config.db_url, config.db_busy_timeout_ms)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            allocator = SqlOrderNumberAllocator(make_session_factory(engine))
            await allocator.ensure_counter()
        finally:
            await engine.dispose()

    asyncio.run(_init())
    click.echo(f"Initialized order database at {config.db_path}")


@cli.command("config")
def show_config() -> None:
    """Print the effective configuration (secrets masked)."""
    config = AppConfig()
    data = config.model_dump(mode="json")
    data["identity"]["jwt_secret"] = "***"
    click.echo(json.dumps(data, indent=2))


@cli.command()
@click.option(
    "--menu",
    "menu_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Menu JSON export ({items, addOns}).",
)
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    callback=_parse_items,
    help="Line as ID[:QTY[:ADDON,...]]. Repeat for more lines.",
)
@click.option("--customer-name", default=None, help="Customer name.")
@click.option("--customer-phone", default=None, help="Customer phone.")
@click.option("--token", envvar="ORDERFLOW_TOKEN", help="Staff bearer token.")
def create(
    menu_path: str,
    items: list[LineRequest],
    customer_name: str | None,
    customer_phone: str | None,
    token: str | None,
) -> None:
    """Write a new ticket priced from the menu."""
    config = AppConfig()
    principal = _authenticate(config, token)
    catalog = _load_catalog(menu_path)
    customer = CustomerInfo(name=customer_name, phone=customer_phone)

    async def _create(svc: OrderLifecycleService) -> Order:
        lines = await build_lines(catalog, items)
        return await svc.create_order(lines, principal, customer)

    order = _run(config, _create)
    stations = ", ".join(sorted(s.value for s in order.stations))
    click.echo(f"Order #{order.order_number} created: {order.id}")
    click.echo(f"Total: {order.total}  Stations: {stations}")


@cli.command()
@click.argument("order_number")
@click.option("--token", envvar="ORDERFLOW_TOKEN", help="Staff bearer token.")
def show(order_number: str, token: str | None) -> None:
    """Show one order by the number printed on its ticket."""
    config = AppConfig()
    principal = _authenticate(config, token)
    order = _run(config, lambda svc: svc.get_order_by_number(order_number, principal))

    click.echo(_format_order_row(order).strip())
    for line in order.items:
        add_ons = ", ".join(a.name_en for a in line.add_ons)
        suffix = f" + {add_ons}" if add_ons else ""
        click.echo(
            f"    {line.quantity} x {line.name_en} [{line.station.value}] "
            f"{line.price}{suffix}"
        )


@cli.command()
@click.option("--token", envvar="ORDERFLOW_TOKEN", help="Staff bearer token.")
def active(token: str | None) -> None:
    """List active (not completed) orders, newest first."""
    config = AppConfig()
    principal = _authenticate(config, token)
    orders = _run(config, lambda svc: svc.list_active_orders(principal))

    if not orders:
        click.echo("No active orders.")
        return
    click.echo(f"Active orders ({len(orders)}):")
    for order in orders:
        click.echo(_format_order_row(order))


@cli.command("set-status")
@click.argument("order_id")
@click.argument("station")
@click.argument("status")
@click.option("--token", envvar="ORDERFLOW_TOKEN", help="Staff bearer token.")
def set_status(order_id: str, station: str, status: str, token: str | None) -> None:
    """Set STATION (kitchen|juicebar) of ORDER_ID to STATUS."""
    config = AppConfig()
    principal = _authenticate(config, token)
    order = _run(
        config,
        lambda svc: svc.update_station_status(order_id, station, status, principal),
    )
    click.echo(f"Order #{order.order_number}: {station} -> {status}")
    click.echo(f"Overall status: {order.overall_status.value}")


@cli.command()
@click.argument("order_id")
@click.argument("method", type=click.Choice(["cash", "card", "mobile"]))
@click.option("--amount-received", default=None, help="Cash handed over.")
@click.option("--change", default=None, help="Change returned.")
@click.option("--mobile-provider", default=None, help="Mobile money provider.")
@click.option("--token", envvar="ORDERFLOW_TOKEN", help="Staff bearer token.")
def pay(
    order_id: str,
    method: str,
    amount_received: str | None,
    change: str | None,
    mobile_provider: str | None,
    token: str | None,
) -> None:
    """Record payment for ORDER_ID and close it."""
    config = AppConfig()
    principal = _authenticate(config, token)
    details = PaymentDetails(
        amount_received=_decimal_option(amount_received, "--amount-received"),
        change=_decimal_option(change, "--change"),
        mobile_provider=mobile_provider,
    )
    order = _run(
        config,
        lambda svc: svc.process_payment(order_id, method, principal, details),
    )
    click.echo(f"Order #{order.order_number} paid by {method}. Total: {order.total}")


@cli.command("issue-token")
@click.option("--user-id", required=True, help="Staff id (token subject).")
@click.option(
    "--role",
    required=True,
    type=click.Choice([r.value for r in Role]),
    help="Staff role.",
)
@click.option("--name", "display_name", required=True, help="Display name.")
def issue_token(user_id: str, role: str, display_name: str) -> None:
    """Mint a staff token signed with the configured secret."""
    config = AppConfig()
    provider = TokenIdentityProvider(config.identity)
    click.echo(provider.issue_token(Principal(user_id, Role(role), display_name)))
