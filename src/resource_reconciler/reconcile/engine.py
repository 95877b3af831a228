"""Reconcile Engine - main orchestrator for resource lifecycles.

Coordinates the reconcile workflow for one invocation:
1. Change set (update only): which tracked fields differ
2. Expand: declared tree -> request payload
3. Mutate: create/update/delete call, retried on transient signatures
4. Poll: re-probe until the target status is reached
5. Flatten: final payload -> tree returned to the caller

Each invocation keeps its state in its own ReconcileResult, so one engine
can run many reconciliations concurrently.
"""
import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Union

from ..config.settings import ReconcilerSettings
from ..errors import (
    MappingError,
    NotFoundChecksExceeded,
    NotFoundError,
    UnexpectedStateError,
    WaitTimeoutError,
)
from ..mapper import Diagnostics, ObjectNode
from ..resources import get_resource_type
from ..resources.base import RemoteObject, ResourceClient, ResourceType, unique_id
from ..utils.audit_log import log_reconcile
from ..utils.logging_config import timed_section
from ..utils.retry import call_with_retry
from .changeset import ChangeSetBuilder, summarize_changes
from .prober import StatusProber
from .schema import (
    FailureReason,
    Intent,
    Phase,
    ProbeResult,
    ReconcileFailure,
    ReconcileResult,
    ReconcileState,
    ResourceStatus,
    WaitConfig,
)
from .waiter import Clock, Sleep, StatusWaiter

logger = logging.getLogger(__name__)

TreeInput = Union[ObjectNode, Mapping[str, Any]]
TypeInput = Union[str, ResourceType]


def failure_reason(error: BaseException) -> FailureReason:
    """Classify an error into the reason reported to the caller."""
    if isinstance(error, WaitTimeoutError):
        return FailureReason.TIMEOUT
    if isinstance(error, NotFoundChecksExceeded):
        return FailureReason.NOT_FOUND
    if isinstance(error, UnexpectedStateError):
        return FailureReason.UNEXPECTED_STATE
    return FailureReason.ERROR


class ReconcileEngine:
    """
    Drive remote objects towards their declared configuration.

    Usage:
        engine = ReconcileEngine({"tls_inspection_configuration": client})
        result = await engine.create("tls_inspection_configuration", {"name": "cfg1", ...})
        if result.success:
            print(result.tree.to_python())
    """

    def __init__(
        self,
        clients: Mapping[str, ResourceClient],
        settings: Optional[ReconcilerSettings] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        audit: bool = True,
    ):
        """
        Initialize the engine.

        Args:
            clients: Transport client per resource type name
            settings: Timeouts, poll and retry settings (defaults if omitted)
            clock: Monotonic clock used for retry and poll deadlines
            sleep: Async sleep used between probes and retries
            audit: Write each outcome to the audit log
        """
        self.clients = dict(clients)
        self.settings = settings or ReconcilerSettings()
        self.clock = clock
        self.sleep = sleep
        self.audit = audit
        self.change_set_builder = ChangeSetBuilder()
        self._types: dict[str, ResourceType] = {}

    # --- Intents ---

    async def create(
        self,
        resource_type: TypeInput,
        declared: TreeInput,
        idempotency_token: Optional[str] = None,
    ) -> ReconcileResult:
        """
        Create the remote object and wait until it is active.

        Args:
            resource_type: Resource type name or instance
            declared: Declared configuration (tree or dict)
            idempotency_token: Token making a retried create safe; generated
                when omitted

        Returns:
            ReconcileResult, CONVERGED with the flattened tree or FAILED
            with the failing phase
        """
        rtype, client = self._resolve(resource_type)
        declared = self._as_tree(rtype, declared)
        result = ReconcileResult(intent=Intent.CREATE, resource_type=rtype.name)
        timeouts = self.settings.timeouts_for(rtype.name)
        token = idempotency_token or unique_id()
        start = time.perf_counter()

        logger.info(f"Creating {rtype.name} (token={token})")

        try:
            payload = self._expand(rtype, declared, result.diagnostics)
            remote = await self._mutate(
                rtype, result,
                lambda: client.create(payload, token),
                rtype.create_retry_signatures,
                timeouts.create,
            )
        except Exception as e:
            return self._fail(result, Phase.MUTATE, e, start)

        result.resource_id = remote.resource_id
        result.update_token = remote.update_token
        logger.info(f"Created {rtype.name} {result.resource_id}, waiting for ACTIVE")

        # The new object may not be visible yet; not-found counts against
        # the not-found tolerance of the poll
        wait_config = self._wait_config(
            rtype,
            timeout=timeouts.create,
            target=(ResourceStatus.ACTIVE,),
            pending=(),
            occurrence=1,
        )
        try:
            final = await self._poll(rtype, client, result, wait_config)
        except Exception as e:
            return self._fail(result, Phase.POLL, e, start)

        return self._converge(rtype, result, final, declared, start)

    async def update(
        self,
        resource_type: TypeInput,
        declared: TreeInput,
        prior: TreeInput,
    ) -> ReconcileResult:
        """
        Update the remote object with the fields that changed.

        An empty change set issues no mutating call; the object is still
        polled until it is settled.

        Args:
            resource_type: Resource type name or instance
            declared: Declared configuration (tree or dict)
            prior: Last recorded state, holding identity and update token

        Returns:
            ReconcileResult with the change set that was applied
        """
        rtype, client = self._resolve(resource_type)
        declared = self._as_tree(rtype, declared)
        prior = self._as_tree(rtype, prior)
        result = ReconcileResult(
            intent=Intent.UPDATE,
            resource_type=rtype.name,
            resource_id=rtype.resource_id_of(prior),
            update_token=rtype.update_token_of(prior),
        )
        timeouts = self.settings.timeouts_for(rtype.name)
        start = time.perf_counter()

        change_set = self.change_set_builder.build(rtype, declared, prior)
        result.change_set = change_set

        if result.resource_id is None:
            return self._fail(
                result, Phase.MUTATE,
                ValueError(f"recorded {rtype.name} state has no identity"),
                start,
            )

        if change_set.empty:
            logger.info(f"No changes for {rtype.name} {result.resource_id}, skipping update call")
        else:
            logger.info(summarize_changes(change_set, declared, prior))
            resource_id = result.resource_id
            update_token = result.update_token
            try:
                payload = self._expand(
                    rtype, declared, result.diagnostics,
                    include=set(change_set.fields) | set(rtype.always_send),
                )
                remote = await self._mutate(
                    rtype, result,
                    lambda: client.update(resource_id, update_token, payload),
                    rtype.update_retry_signatures,
                    timeouts.update,
                )
            except Exception as e:
                return self._fail(result, Phase.MUTATE, e, start)

            if remote.update_token:
                result.update_token = remote.update_token

        wait_config = self._wait_config(
            rtype,
            timeout=timeouts.update,
            target=(ResourceStatus.ACTIVE,),
            pending=(ResourceStatus.PENDING,),
            occurrence=2,
        )
        try:
            final = await self._poll(rtype, client, result, wait_config)
        except Exception as e:
            return self._fail(result, Phase.POLL, e, start)

        return self._converge(rtype, result, final, declared, start)

    async def delete(self, resource_type: TypeInput, prior: TreeInput) -> ReconcileResult:
        """
        Delete the remote object and wait until it is gone.

        A not-found answer to the delete call means the object is already
        gone and the reconciliation converges at once.

        Args:
            resource_type: Resource type name or instance
            prior: Last recorded state, holding the identity

        Returns:
            ReconcileResult with ``removed`` set on success
        """
        rtype, client = self._resolve(resource_type)
        prior = self._as_tree(rtype, prior)
        result = ReconcileResult(
            intent=Intent.DELETE,
            resource_type=rtype.name,
            resource_id=rtype.resource_id_of(prior),
        )
        timeouts = self.settings.timeouts_for(rtype.name)
        start = time.perf_counter()

        if result.resource_id is None:
            return self._fail(
                result, Phase.MUTATE,
                ValueError(f"recorded {rtype.name} state has no identity"),
                start,
            )

        resource_id = result.resource_id
        logger.info(f"Deleting {rtype.name} {resource_id}")

        try:
            await self._mutate(
                rtype, result,
                lambda: client.delete(resource_id),
                rtype.delete_retry_signatures,
                timeouts.delete,
            )
        except NotFoundError:
            logger.info(f"{rtype.name} {resource_id} already gone")
            result.removed = True
            self._set_state(result, ReconcileState.CONVERGED)
            return self._finish(result, start)
        except Exception as e:
            return self._fail(result, Phase.MUTATE, e, start)

        wait_config = self._wait_config(
            rtype,
            timeout=timeouts.delete,
            target=(ResourceStatus.NOT_FOUND,),
            pending=(ResourceStatus.DELETING, ResourceStatus.ACTIVE),
            occurrence=1,
        )
        try:
            await self._poll(rtype, client, result, wait_config)
        except Exception as e:
            return self._fail(result, Phase.POLL, e, start)

        result.removed = True
        self._set_state(result, ReconcileState.CONVERGED)
        return self._finish(result, start)

    async def read(
        self,
        resource_type: TypeInput,
        resource_id: str,
        prior: Optional[TreeInput] = None,
    ) -> ReconcileResult:
        """
        Refresh (or import) one object with a single probe.

        Args:
            resource_type: Resource type name or instance
            resource_id: Identity of the object
            prior: Last recorded state; write-only fields are copied from it

        Returns:
            ReconcileResult with the flattened tree, or ``removed=True`` when
            the object no longer exists

        Raises:
            RemoteError: the read failed for a reason other than not-found
        """
        rtype, client = self._resolve(resource_type)
        prior = self._as_tree(rtype, prior) if prior is not None else None
        result = ReconcileResult(intent=None, resource_type=rtype.name, resource_id=resource_id)
        start = time.perf_counter()

        probe = await StatusProber(client, rtype).probe(resource_id)
        result.probes = 1

        if probe.gone:
            logger.warning(f"{rtype.name} {resource_id} not found, removing from state")
            result.removed = True
            self._set_state(result, ReconcileState.CONVERGED)
            return self._finish(result, start)

        return self._converge(rtype, result, probe, prior, start)

    # --- Phases ---

    def _expand(
        self,
        rtype: ResourceType,
        declared: ObjectNode,
        diagnostics: Diagnostics,
        include: Optional[set[str]] = None,
    ) -> dict[str, Any]:
        local = Diagnostics()
        payload = rtype.expand(declared, local, include)
        diagnostics.extend(local)
        if local.has_errors:
            raise MappingError(rtype.name, [str(d) for d in local.errors])
        for warning in local.warnings:
            logger.warning(f"{rtype.name}: {warning}")
        return payload

    async def _mutate(
        self,
        rtype: ResourceType,
        result: ReconcileResult,
        call: Callable[[], Awaitable[Any]],
        signatures: tuple[str, ...],
        timeout: float,
    ) -> Any:
        async def attempt():
            result.mutating_calls += 1
            return await call()

        action = result.intent.value
        async with timed_section(action, resource_id=result.resource_id, resource_type=rtype.name):
            return await call_with_retry(
                attempt,
                signatures,
                timeout,
                policy=self.settings.retry_for(rtype.name),
                sleep=self.sleep,
                description=f"{action} {rtype.name}",
                clock=self.clock,
            )

    async def _poll(
        self,
        rtype: ResourceType,
        client: ResourceClient,
        result: ReconcileResult,
        wait_config: WaitConfig,
    ) -> ProbeResult:
        prober = StatusProber(client, rtype)
        resource_id = result.resource_id
        waiter = StatusWaiter(
            lambda: prober.probe(resource_id),
            wait_config,
            clock=self.clock,
            sleep=self.sleep,
        )
        self._set_state(result, ReconcileState.POLLING)
        try:
            async with timed_section(
                "poll", resource_id=resource_id, intent=result.intent.value
            ):
                return await waiter.wait()
        finally:
            result.probes += waiter.probes

    def _wait_config(
        self,
        rtype: ResourceType,
        timeout: float,
        target: tuple[ResourceStatus, ...],
        pending: tuple[ResourceStatus, ...],
        occurrence: int,
    ) -> WaitConfig:
        poll = self.settings.poll_for(rtype.name)
        return WaitConfig(
            target=target,
            pending=pending,
            timeout=timeout,
            interval=poll.interval,
            not_found_checks=poll.not_found_checks,
            continuous_target_occurrence=occurrence,
        )

    # --- Outcomes ---

    def _converge(
        self,
        rtype: ResourceType,
        result: ReconcileResult,
        final: ProbeResult,
        declared: Optional[ObjectNode],
        start: float,
    ) -> ReconcileResult:
        remote = RemoteObject(
            resource_id=final.resource_id or result.resource_id,
            payload=final.payload or {},
            update_token=final.update_token or result.update_token,
        )
        tree = rtype.flatten(remote, result.diagnostics)
        for warning in result.diagnostics.warnings:
            logger.warning(f"{rtype.name} {remote.resource_id}: {warning}")

        result.tree = rtype.carry_over(tree, declared)
        result.resource_id = remote.resource_id
        result.update_token = remote.update_token
        self._set_state(result, ReconcileState.CONVERGED)
        return self._finish(result, start)

    def _fail(
        self,
        result: ReconcileResult,
        phase: Phase,
        error: Exception,
        start: float,
    ) -> ReconcileResult:
        result.failure = ReconcileFailure(
            intent=result.intent,
            phase=phase,
            reason=failure_reason(error),
            resource_type=result.resource_type,
            resource_id=result.resource_id,
            cause=error,
        )
        logger.error(str(result.failure))
        self._set_state(result, ReconcileState.FAILED)
        return self._finish(result, start)

    def _finish(self, result: ReconcileResult, start: float) -> ReconcileResult:
        duration_ms = (time.perf_counter() - start) * 1000
        if self.audit:
            log_reconcile(result, duration_ms)
        return result

    def _set_state(self, result: ReconcileResult, state: ReconcileState) -> None:
        logger.debug(
            f"{result.resource_type} {result.resource_id or '-'}: "
            f"{result.state.value} -> {state.value}"
        )
        result.state = state

    # --- Helpers ---

    def _resolve(self, resource_type: TypeInput) -> tuple[ResourceType, ResourceClient]:
        if isinstance(resource_type, ResourceType):
            rtype = resource_type
        else:
            key = resource_type.lower()
            if key not in self._types:
                self._types[key] = get_resource_type(key)
            rtype = self._types[key]

        client = self.clients.get(rtype.name)
        if client is None:
            raise ValueError(f"No client configured for resource type: {rtype.name}")
        return rtype, client

    def _as_tree(self, rtype: ResourceType, config: TreeInput) -> ObjectNode:
        if isinstance(config, ObjectNode):
            return config
        return rtype.parse(config)
