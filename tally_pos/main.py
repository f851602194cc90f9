# tally_pos/main.py
from fastapi import FastAPI
import uvicorn

from tally_pos.api.deps import Terminal, build_terminal
from tally_pos.api.routers import cart, catalog, checkout, health, history, session
from tally_pos.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(terminal: Terminal | None = None) -> FastAPI:
    app = FastAPI(
        title="Tally POS Terminal",
        version="1.0.0",
    )

    terminal = terminal or build_terminal()
    identity = terminal.session.restore()
    logger.info(
        f"Terminal ready, session: {identity.username if identity else 'logged out'}"
    )
    app.state.terminal = terminal

    # Include routers
    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(catalog.router)
    app.include_router(history.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
