# tally_pos/api/routers/history.py
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from tally_pos.api.deps import Terminal, get_terminal, http_error, require_cashier
from tally_pos.domain.errors import CashierError
from tally_pos.domain.schemas import HistoryOut, Identity, ReceiptOut
from tally_pos.services.history_service import PRESETS, summarize
from tally_pos.services.receipt_service import format_receipt

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=HistoryOut)
def list_history(
    preset: str = Query("today"),
    start: date | None = Query(None),
    end: date | None = Query(None),
    identity: Identity = Depends(require_cashier),
    terminal: Terminal = Depends(get_terminal),
):
    if preset not in PRESETS:
        raise HTTPException(status_code=422, detail=f"preset must be one of {', '.join(PRESETS)}")

    start_dt, end_dt, items = terminal.history.list_for(identity, preset, start=start, end=end)
    return HistoryOut(start=start_dt, end=end_dt, summary=summarize(items), transactions=items)


@router.get("/{transaction_id}/receipt", response_model=ReceiptOut)
def reprint(
    transaction_id: str,
    identity: Identity = Depends(require_cashier),
    terminal: Terminal = Depends(get_terminal),
):
    try:
        result = terminal.history.get(transaction_id)
    except CashierError as e:
        raise http_error(e)
    return ReceiptOut(transaction_code=result.transaction_code, text=format_receipt(result))
