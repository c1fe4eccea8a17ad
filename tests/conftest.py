from datetime import datetime, timedelta

import pytest

from restaurant.application.authorization import AuthorizationGate
from restaurant.application.notification_dispatcher import NotificationDispatcher
from restaurant.application.orchestrator import Orchestrator
from restaurant.application.order_state_machine import OrderStateMachine
from restaurant.application.permission_service import PermissionService
from restaurant.application.sweeper import AutoExpirySweeper
from restaurant.domain import models  # noqa: F401
from restaurant.domain.schemas import OrderCreate
from restaurant.infrastructure.database import Base, build_engine, build_session_factory
from restaurant.infrastructure.permission_cache import PermissionCache
from restaurant.infrastructure.repositories.order_repository import PostgresOrderRepository
from restaurant.infrastructure.repositories.permission_repository import PostgresPermissionRepository
from restaurant.interfaces.INotifier import INotifier


class FakeClock:
    """Wall clock for domain timestamps (naive UTC)."""

    def __init__(self, start: datetime = datetime(2026, 3, 14, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic seconds for the permission cache TTL."""

    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class RecordingNotifier(INotifier):
    def __init__(self):
        self.events = []
        self.fail = False

    async def notify(self, event_kind, order_snapshot):
        if self.fail:
            raise RuntimeError("notifier unavailable")
        self.events.append((event_kind, order_snapshot))

    def kinds_for(self, order_id):
        return [kind for kind, snap in self.events if snap["id"] == order_id]


def order_payload(total: float = 42.50) -> OrderCreate:
    return OrderCreate.model_validate({
        "items": [
            {"menuItemId": 2, "name": "Margherita Pizza", "price": 12.50, "quantity": 2},
            {"menuItemId": 5, "name": "Chocolate Lava Cake", "price": 8.50, "quantity": 2},
        ],
        "customer": {"name": "Jane Doe", "email": "jane@example.com", "phone": "+15550001111", "address": "1 Main St"},
        "total": total,
    })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_clock():
    return FakeMonotonic()


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def order_repo(session_factory):
    return PostgresOrderRepository(session_factory)


@pytest.fixture
def permission_repo(session_factory):
    return PostgresPermissionRepository(session_factory)


@pytest.fixture
def permission_cache(cache_clock):
    return PermissionCache(redis_url=None, ttl=60, clock=cache_clock)


@pytest.fixture
async def permission_service(permission_repo, permission_cache):
    service = PermissionService(permission_repo, permission_cache)
    await service.seed_defaults()
    return service


@pytest.fixture
def gate(permission_service):
    return AuthorizationGate(permission_service)


@pytest.fixture
def state_machine(clock):
    return OrderStateMachine(clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def dispatcher(notifier):
    dispatcher = NotificationDispatcher(notifier)
    dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
def orchestrator(order_repo, permission_service, gate, state_machine, dispatcher):
    return Orchestrator(
        order_repo=order_repo,
        permission_service=permission_service,
        gate=gate,
        state_machine=state_machine,
        dispatcher=dispatcher,
    )


@pytest.fixture
def sweeper(order_repo, state_machine, dispatcher, clock):
    return AutoExpirySweeper(order_repo, state_machine, dispatcher, interval=0.01, clock=clock)


@pytest.fixture
def place(orchestrator):
    async def _place(caller=None, total: float = 42.50):
        return await orchestrator.place_order(order_payload(total), caller)
    return _place
