"""Status prober: one remote read reduced to a status token."""
import logging

from ..errors import NotFoundError
from ..resources.base import ResourceClient, ResourceType
from ..utils.logging_config import timed
from .schema import GONE, ProbeResult, ResourceStatus

logger = logging.getLogger(__name__)


class StatusProber:
    """Read a remote object once and classify its lifecycle status."""

    def __init__(self, client: ResourceClient, resource_type: ResourceType):
        self.client = client
        self.resource_type = resource_type

    @timed("probe")
    async def probe(self, resource_id: str) -> ProbeResult:
        """
        Perform exactly one remote read.

        Returns:
            ProbeResult with the decoded payload and status token, or the
            GONE sentinel when the service reports the object as missing

        Raises:
            RemoteError: any other read failure, unchanged
        """
        try:
            remote = await self.client.read(resource_id)
        except NotFoundError:
            logger.debug(f"{self.resource_type.name} {resource_id} not found")
            return GONE

        payload = dict(remote.payload or {})
        raw_status = self.resource_type.status_of(payload)
        if self.resource_type.status_field is None:
            status = ResourceStatus.ACTIVE
        else:
            status = ResourceStatus.from_raw(raw_status)

        logger.debug(f"{self.resource_type.name} {resource_id} status={status.value}")

        return ProbeResult(
            status=status,
            payload=payload,
            update_token=remote.update_token,
            resource_id=remote.resource_id or resource_id,
            raw_status=raw_status,
        )

    __call__ = probe
