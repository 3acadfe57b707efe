from fastapi import APIRouter, HTTPException, Depends
import logging

from models import BalanceResponse, NetworkResponse
from models.domain_models import Currency
from clients import get_network_guard, get_token_ledger, ArenaClientError
from .errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/balance/{currency}", response_model=BalanceResponse)
async def get_balance(currency: int, ledger = Depends(get_token_ledger)):
	try:
		currency = Currency(currency)
	except ValueError:
		raise HTTPException(status_code=400, detail=f"Unknown currency {currency}")
	try:
		balance = await ledger.get_balance(currency)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Balance read failed for {currency.name}: {exc}", exc_info=True)
		raise HTTPException(status_code=502, detail=f"Failed to get balance: {exc}")
	return BalanceResponse(currency=currency, symbol=ledger.symbol(currency), balance=balance)


@router.post("/network", response_model=NetworkResponse)
async def ensure_network(guard = Depends(get_network_guard)):
	try:
		conn = await guard.ensure_network()
	except ArenaClientError as exc:
		return error_response(exc)
	return NetworkResponse(chain_id=conn.chain_id, chain_name=guard.network.name, account=conn.account)
