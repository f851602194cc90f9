# tally_pos/api/routers/session.py
from fastapi import APIRouter, Depends, HTTPException

from tally_pos.api.deps import Terminal, get_terminal, http_error
from tally_pos.domain.errors import CashierError
from tally_pos.domain.schemas import Identity, LoginIn, LoginOut

router = APIRouter(prefix="/session", tags=["session"])


@router.post("/login", response_model=LoginOut)
def login(payload: LoginIn, terminal: Terminal = Depends(get_terminal)):
    try:
        redirect_to = terminal.session.login(payload.username, payload.password)
    except CashierError as e:
        raise http_error(e)
    return LoginOut(identity=terminal.session.identity, redirect_to=redirect_to)


@router.post("/logout")
def logout(terminal: Terminal = Depends(get_terminal)):
    #the next cashier starts with an empty cart
    try:
        terminal.checkout.reset()
    except CashierError as e:
        raise http_error(e)
    terminal.search.cancel()
    return {"redirect_to": terminal.session.logout()}


@router.get("/me", response_model=Identity)
def me(terminal: Terminal = Depends(get_terminal)):
    if not terminal.session.identity:
        raise HTTPException(status_code=401, detail="Not logged in")
    return terminal.session.identity
