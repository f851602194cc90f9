# tally_pos/api/routers/catalog.py
from typing import List

from fastapi import APIRouter, Depends, Query

from tally_pos.api.deps import Terminal, get_terminal, require_cashier
from tally_pos.domain.schemas import Customer, Product, SearchIn, SearchResultsOut

router = APIRouter(tags=["catalog"], dependencies=[Depends(require_cashier)])


@router.get("/catalog/products", response_model=List[Product])
def search_products(q: str = Query(""), terminal: Terminal = Depends(get_terminal)):
    return terminal.products.search(q)


@router.post("/catalog/search", response_model=SearchResultsOut, status_code=202)
def type_search(payload: SearchIn, terminal: Terminal = Depends(get_terminal)):
    """Debounced search-as-you-type; poll /catalog/results for the outcome."""
    terminal.search.submit(payload.term)
    return SearchResultsOut(
        term=terminal.search.latest_term,
        pending=terminal.search.pending,
        products=terminal.search.latest,
    )


@router.get("/catalog/results", response_model=SearchResultsOut)
def search_results(terminal: Terminal = Depends(get_terminal)):
    return SearchResultsOut(
        term=terminal.search.latest_term,
        pending=terminal.search.pending,
        products=terminal.search.latest,
    )


@router.get("/customers", response_model=List[Customer])
def search_customers(q: str = Query(""), terminal: Terminal = Depends(get_terminal)):
    return terminal.customers.search(q)
