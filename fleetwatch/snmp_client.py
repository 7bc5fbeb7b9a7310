from __future__ import annotations

import asyncio
import logging
from typing import Any

from pysnmp.error import PySnmpError
from pysnmp.hlapi.v1arch.asyncio import (
    CommunityData,
    ObjectIdentity,
    ObjectType,
    SnmpDispatcher,
    UdpTransportTarget,
    get_cmd,
)
from pysnmp.proto import errind
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from fleetwatch.errors import SnmpProtocolError, SnmpTimeout, UnsupportedIdentifier
from fleetwatch.logging_utils import TRACE_LEVEL
from fleetwatch.models import DeviceEndpoint

# Message processing model per protocol version.
MP_MODELS = {"1": 0, "2c": 1}

# SNMPv1 reports a missing identifier as an error status instead of an
# exception value in the varbind.
NO_SUCH_NAME = 2

_MISSING_VALUE_TYPES = (NoSuchObject, NoSuchInstance, EndOfMibView)


class SnmpClient:
    """Scalar SNMP GET client.

    Every call opens its own dispatcher and closes it before returning; the
    orchestrator's worker pool provides the concurrency.
    """

    def __init__(self, version: str = "2c") -> None:
        if version not in MP_MODELS:
            raise ValueError(f"Unsupported SNMP version: {version}")
        self.version = version
        self._mp_model = MP_MODELS[version]
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, endpoint: DeviceEndpoint, oid: str) -> str:
        """Fetch one scalar value and return it rendered as a string.

        Raises:
            SnmpTimeout: no reply within the endpoint's retry budget.
            SnmpProtocolError: the agent or the engine reported an error.
            UnsupportedIdentifier: the agent has no such object or instance.
        """
        return asyncio.run(self._get(endpoint, oid))

    async def _get(self, endpoint: DeviceEndpoint, oid: str) -> str:
        dispatcher = SnmpDispatcher()
        try:
            try:
                target = await UdpTransportTarget.create(
                    (endpoint.address, endpoint.port),
                    timeout=endpoint.timeout_s,
                    retries=endpoint.retries,
                )
            except PySnmpError as exc:
                raise SnmpProtocolError(
                    f"cannot open transport to {endpoint.address}: {exc}",
                    address=endpoint.address,
                    oid=oid,
                ) from exc
            error_indication, error_status, error_index, var_binds = await get_cmd(
                dispatcher,
                CommunityData(endpoint.community, mpModel=self._mp_model),
                target,
                ObjectType(ObjectIdentity(oid)),
            )
        finally:
            self._close(dispatcher)
        return self._decode(endpoint, oid, error_indication, error_status, error_index, var_binds)

    def _decode(
        self,
        endpoint: DeviceEndpoint,
        oid: str,
        error_indication: Any,
        error_status: Any,
        error_index: Any,
        var_binds: Any,
    ) -> str:
        if error_indication:
            if isinstance(error_indication, errind.RequestTimedOut):
                raise SnmpTimeout(
                    f"timeout after {endpoint.retries} retries x {endpoint.timeout_s:g}s "
                    f"waiting for {endpoint.address}",
                    address=endpoint.address,
                    oid=oid,
                )
            raise SnmpProtocolError(
                f"{error_indication} ({endpoint.address})", address=endpoint.address, oid=oid
            )
        if error_status:
            if int(error_status) == NO_SUCH_NAME:
                raise UnsupportedIdentifier(
                    f"{oid} not supported by {endpoint.address}", address=endpoint.address, oid=oid
                )
            raise SnmpProtocolError(
                f"{error_status.prettyPrint()} at index {error_index} for {oid} ({endpoint.address})",
                address=endpoint.address,
                oid=oid,
            )
        if not var_binds:
            raise SnmpProtocolError(
                f"empty response for {oid} ({endpoint.address})", address=endpoint.address, oid=oid
            )
        value = var_binds[0][1]
        if isinstance(value, _MISSING_VALUE_TYPES):
            raise UnsupportedIdentifier(
                f"{oid} not supported by {endpoint.address}", address=endpoint.address, oid=oid
            )
        text = value.prettyPrint()
        self.logger.log(TRACE_LEVEL, "%s %s = %s", endpoint.address, oid, text)
        return text

    def _close(self, dispatcher: SnmpDispatcher) -> None:
        try:
            dispatcher.transport_dispatcher.close_dispatcher()
        except Exception:
            self.logger.debug("Failed to close SNMP dispatcher.", exc_info=True)
