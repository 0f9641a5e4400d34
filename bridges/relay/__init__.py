"""
Relay Agent - Notion -> Discord

Receives Notion webhooks, tags each update by category and forwards it
to Discord as an embed. The FastAPI app lives in bridges.relay.server.
"""

from .server import app, init_state, run_server

__all__ = [
    "app",
    "init_state",
    "run_server",
]
