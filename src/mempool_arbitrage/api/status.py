"""Status and administrative API endpoints."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .dependencies import AppServices, get_services

logger = logging.getLogger(__name__)

# Create the FastAPI router
router = APIRouter()


class FundRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount_eth: Optional[float] = Field(default=None, alias="amountETH")


class WithdrawRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: Optional[str] = None
    amount: Optional[float] = None
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")


class ContractBalanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_address: Optional[str] = Field(default=None, alias="contractAddress")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/health")
def basic_health_check() -> Dict[str, Any]:
    """Basic health check that returns system status."""
    return {
        "status": "healthy",
        "message": "Service is operational",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/status")
def pipeline_status(services: AppServices = Depends(get_services)) -> Dict[str, Any]:
    """Read-only snapshot of the pipeline counters."""
    snapshot = services.counters.snapshot()
    return {
        "online": services.pipeline.is_running,
        "pendingScanned": snapshot.pending_scanned,
        "mevOpportunities": snapshot.opportunities_found,
        "executionsAttempted": snapshot.executions_attempted,
        "profitableExecutions": snapshot.profitable_executions,
        "totalProfitETH": f"{snapshot.total_profit_eth:.4f}",
        "staleDiscarded": snapshot.stale_discarded,
        "droppedEvents": snapshot.dropped_events,
        "resolutions": snapshot.resolutions,
        "uptimeSeconds": round(snapshot.uptime_seconds, 1),
        "contractBalance": "Query on-chain",
        "relay": services.pipeline.submitter.relay.get_stats(),
    }


@router.get("/balance")
async def wallet_balance(services: AppServices = Depends(get_services)):
    """Balance of the executing wallet in ETH."""
    try:
        return {"balance": await services.admin.wallet_balance_eth()}
    except Exception as e:
        logger.error(f"Balance query failed: {e}")
        return _error(500, str(e))


@router.get("/earnings")
async def contract_earnings(services: AppServices = Depends(get_services)):
    """Earnings credited to the wallet by the execution contract."""
    try:
        return {"earnings": await services.admin.earnings_eth()}
    except Exception as e:
        logger.error(f"Earnings query failed: {e}")
        return _error(500, str(e))


@router.post("/contract-balance")
async def contract_balance(
    request: ContractBalanceRequest,
    services: AppServices = Depends(get_services)
):
    """Balance of the execution contract (or another address) in ETH."""
    address = request.contract_address or services.admin.contract.address
    try:
        balance = await services.admin.contract_balance_eth(address)
    except Exception as e:
        logger.error(f"Contract balance query failed: {e}")
        return _error(500, str(e))
    return {"balance": balance, "address": address}


@router.post("/fund-contract")
async def fund_contract(request: FundRequest, services: AppServices = Depends(get_services)):
    """Send ETH from the wallet to the execution contract."""
    if not request.amount_eth or request.amount_eth <= 0:
        return _error(400, "Invalid amount")

    try:
        receipt = await services.admin.fund_contract(request.amount_eth)
    except Exception as e:
        logger.error(f"Funding failed: {e}")
        return _error(500, str(e))

    return {
        "success": True,
        "txHash": receipt.tx_hash,
        "message": f"Funded contract with {request.amount_eth} ETH"
    }


@router.post("/withdraw")
async def withdraw(request: WithdrawRequest, services: AppServices = Depends(get_services)):
    """Withdraw from the execution contract."""
    if not request.address or not request.amount:
        return _error(400, "Missing address or amount")

    logger.info(f"Withdrawal request: {request.amount} ETH to {request.address}")

    try:
        receipt = await services.admin.withdraw(request.amount, request.contract_address)
    except Exception as e:
        logger.error(f"Withdrawal error: {e}")
        return _error(500, str(e))

    return {
        "success": True,
        "txHash": receipt.tx_hash,
        "blockNumber": receipt.block_number,
        "amount": request.amount,
        "to": request.address
    }
