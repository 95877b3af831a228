"""Shared fixtures: in-memory transport and a fake clock."""
import pytest

from resource_reconciler.config import ReconcilerSettings
from resource_reconciler.errors import NotFoundError
from resource_reconciler.reconcile import ReconcileEngine
from resource_reconciler.resources import RemoteObject, ResourceClient

# Read script step meaning "the service reports the object as missing"
MISSING = "MISSING"

TLS_ARN_PREFIX = "arn:aws:network-firewall:us-east-1:123456789012:tls-configuration/"


class FakeClock:
    """Monotonic clock advanced only by the async sleep."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeClient(ResourceClient):
    """In-memory transport with scripted reads and injected errors.

    ``reads`` is consumed one step per read: a status string overrides the
    status field, ``MISSING`` raises NotFoundError and an exception instance
    is raised as-is. Once the script is empty, reads return the stored
    object as ACTIVE.
    """

    def __init__(
        self,
        status_field=None,
        id_prefix="id-",
        response_fields=None,
        dropped_fields=(),
    ):
        self.status_field = status_field
        self.id_prefix = id_prefix
        self.response_fields = dict(response_fields or {})
        self.dropped_fields = set(dropped_fields)

        self.objects: dict[str, dict] = {}
        self.deleted: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.reads: list = []
        self.create_errors: list[Exception] = []
        self.update_errors: list[Exception] = []
        self.delete_errors: list[Exception] = []
        self._by_idempotency_token: dict[str, str] = {}
        self._counter = 0

    @property
    def mutating_calls(self) -> int:
        return sum(1 for call in self.calls if call[0] != "read")

    @property
    def read_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "read")

    def _next_token(self) -> str:
        self._counter += 1
        return f"token-{self._counter}"

    async def create(self, payload, idempotency_token):
        self.calls.append(("create", payload, idempotency_token))
        if self.create_errors:
            raise self.create_errors.pop(0)

        existing = self._by_idempotency_token.get(idempotency_token)
        if existing is not None:
            return RemoteObject(existing, dict(self.objects[existing]), self.tokens[existing])

        resource_id = f"{self.id_prefix}{len(self._by_idempotency_token) + 1}"
        self._by_idempotency_token[idempotency_token] = resource_id
        self.objects[resource_id] = dict(payload)
        self.tokens[resource_id] = self._next_token()
        return RemoteObject(resource_id, dict(payload), self.tokens[resource_id])

    async def read(self, resource_id):
        self.calls.append(("read", resource_id))

        status = None
        if self.reads:
            step = self.reads.pop(0)
            if isinstance(step, Exception):
                raise step
            if step == MISSING:
                raise NotFoundError(f"{resource_id} not found")
            status = step

        stored = self.objects.get(resource_id)
        if stored is None and status is not None:
            stored = self.deleted.get(resource_id)
        if stored is None:
            raise NotFoundError(f"{resource_id} not found")

        payload = {k: v for k, v in stored.items() if k not in self.dropped_fields}
        payload.update(self.response_fields)
        if self.status_field:
            payload[self.status_field] = status or "ACTIVE"
        return RemoteObject(resource_id, payload, self.tokens.get(resource_id))

    async def update(self, resource_id, update_token, payload):
        self.calls.append(("update", resource_id, update_token, payload))
        if self.update_errors:
            raise self.update_errors.pop(0)
        if resource_id not in self.objects:
            raise NotFoundError(f"{resource_id} not found")

        self.objects[resource_id].update(payload)
        self.tokens[resource_id] = self._next_token()
        return RemoteObject(resource_id, dict(self.objects[resource_id]), self.tokens[resource_id])

    async def delete(self, resource_id):
        self.calls.append(("delete", resource_id))
        if self.delete_errors:
            raise self.delete_errors.pop(0)
        if resource_id not in self.objects:
            raise NotFoundError(f"{resource_id} not found")
        self.deleted[resource_id] = self.objects.pop(resource_id)
        self.tokens.pop(resource_id, None)


def fast_settings(**overrides) -> ReconcilerSettings:
    """Settings with instant retries and a bounded attempt count."""
    data = {
        "timeouts": {"create": 60, "update": 60, "delete": 60},
        "poll": {"interval": 5, "not_found_checks": 20},
        "retry": {"max_attempts": 3, "min_wait": 0, "max_wait": 0},
    }
    data.update(overrides)
    return ReconcilerSettings.model_validate(data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tls_client():
    return FakeClient(
        status_field="TLSInspectionConfigurationStatus",
        id_prefix=TLS_ARN_PREFIX,
        response_fields={
            "LastModifiedTime": "2024-01-02T03:04:05Z",
            "NumberOfAssociations": 0,
        },
    )


@pytest.fixture
def action_client():
    # The catalog never returns the accept language
    return FakeClient(id_prefix="act-", dropped_fields=("AcceptLanguage",))


@pytest.fixture
def engine(tls_client, action_client, clock):
    return ReconcileEngine(
        {
            "tls_inspection_configuration": tls_client,
            "service_action": action_client,
        },
        settings=fast_settings(),
        clock=clock,
        sleep=clock.sleep,
        audit=False,
    )
