"""Service container shared by the API routes."""
from dataclasses import dataclass

from fastapi import HTTPException, Request

from ..execution.admin_transactions import AdminTransactions
from ..pipeline.counters import PipelineCounters
from ..pipeline.orchestrator import OpportunityPipeline


@dataclass
class AppServices:
    """Long-lived services created at startup."""
    pipeline: OpportunityPipeline
    counters: PipelineCounters
    admin: AdminTransactions


def get_services(request: Request) -> AppServices:
    """Resolve the services, or 503 while startup has not completed."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not started")
    return services
