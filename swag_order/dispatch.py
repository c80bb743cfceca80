# dispatch.py

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from swag_order.logger import log_error, log_info
from swag_order.schemas import OrderSubmission
from swag_order.sinks import Sink, SinkNotConfigured

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class SinkResult:
    name: str
    status: str
    response: Any = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == SENT


@dataclass
class DispatchResult:
    results: List[SinkResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """ Best-effort broadcast: one delivered sink is enough. """
        return any(result.sent for result in self.results)

    @property
    def details(self) -> Dict[str, bool]:
        return {result.name: result.sent for result in self.results}


async def deliver_one(sink: Sink, order: OrderSubmission, client: httpx.AsyncClient, request_id: str = "N/A") -> SinkResult:
    """ Run one sink and turn its outcome into a SinkResult; never raises for sink-level failures. """
    log_info(f"Attempting {sink.name} submission", request_id=request_id)
    try:
        response = await sink.deliver(order, client)
    except SinkNotConfigured as e:
        log_info(f"Skipping {sink.name}: {e.reason}", request_id=request_id)
        return SinkResult(name=sink.name, status=SKIPPED, error=e.reason)
    except Exception as e:
        # SinkDeliveryError, httpx.HTTPError or anything else raised while building/sending
        log_error(f"{sink.name} submission failed: {e}", request_id=request_id)
        return SinkResult(name=sink.name, status=FAILED, error=str(e))
    log_info(f"{sink.name} submission successful", request_id=request_id)
    return SinkResult(name=sink.name, status=SENT, response=response)


async def dispatch_order(
    order: OrderSubmission,
    sinks: List[Sink],
    client: httpx.AsyncClient,
    parallel: bool = False,
    request_id: str = "N/A",
) -> DispatchResult:
    """
    Fan one order out to every sink.

    Sinks run one after another unless parallel is set; either way each sink is attempted
    regardless of how the others fared and results keep the sinks' order.
    """
    if parallel:
        results = await asyncio.gather(*(deliver_one(sink, order, client, request_id) for sink in sinks))
        return DispatchResult(results=list(results))

    dispatch = DispatchResult()
    for sink in sinks:
        dispatch.results.append(await deliver_one(sink, order, client, request_id))
    return dispatch
