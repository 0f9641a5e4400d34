"""
Relay Server

FastAPI server that forwards Notion updates to a Discord channel.

Endpoints:
- POST /notion-webhook: Notion webhook endpoint
- GET /health: Health check

Pipeline:
1. Receive webhook delivery
2. Verify signature (when signed, or always when required)
3. Parse with NotionHandler
4. Classify the update and build the Discord embed
5. Post to the Discord webhook
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI, Request, HTTPException, Header
from fastapi.responses import JSONResponse

from ..archive.classifier import classify
from ..archive.rule_parser import CategoryRule, load_rules
from ..common.config import BridgesConfig, load_config
from ..common.discord_client import DiscordAPIError, DiscordWebhookClient
from ..common.embeds import notion_update_embed
from ..common.logs import configure_logging
from ..handlers import NotionHandler

logger = logging.getLogger("bridges.relay")


# Global state
config: Optional[BridgesConfig] = None
notion_handler: Optional[NotionHandler] = None
discord_webhook: Optional[DiscordWebhookClient] = None
rules: Optional[Sequence[CategoryRule]] = None


def init_state(cfg: BridgesConfig, webhook: Optional[DiscordWebhookClient] = None) -> None:
    """Initialize module state from config"""
    global config, notion_handler, discord_webhook, rules

    config = cfg
    notion_handler = NotionHandler(signing_secret=cfg.notion.signing_secret)
    discord_webhook = webhook or DiscordWebhookClient(cfg.discord.webhook_url)
    rules = load_rules(cfg.archive.rules_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    logger.info("Relay starting up...")

    if config is None:
        init_state(load_config())

    if not discord_webhook.is_configured:
        logger.warning("DISCORD_WEBHOOK_URL not set, updates cannot be forwarded")
    if not notion_handler.has_secret:
        logger.warning("NOTION_SECRET not set, signatures will not be verified")

    logger.info("Ready to receive Notion webhooks")

    yield

    logger.info("Relay shutting down...")


app = FastAPI(
    title="Bridges Notion Relay",
    description="Forwards Notion updates to Discord",
    version="0.1.0",
    lifespan=lifespan
)


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "configured": {
            "discord": bool(discord_webhook and discord_webhook.is_configured),
            "notion": bool(notion_handler and notion_handler.has_secret),
        },
    }


@app.post("/notion-webhook")
async def notion_webhook(
    request: Request,
    x_notion_signature: Optional[str] = Header(None),
):
    """
    Handle a Notion webhook delivery and forward it to Discord.
    """
    if not notion_handler or not discord_webhook:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    body = await request.body()

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return JSONResponse({"error": "Invalid JSON"}, status_code=400)

    if not isinstance(data, dict):
        return JSONResponse({"error": "Invalid payload"}, status_code=400)

    # Subscription handshake; Notion does not sign it
    if notion_handler.is_verification_request(data):
        logger.info("Received Notion verification token; configure it as NOTION_SECRET")
        return JSONResponse({"success": True})

    # Verify signature if present (or always, when required)
    if x_notion_signature or config.relay.require_signature:
        if not notion_handler.verify_signature(body, x_notion_signature or ""):
            return JSONResponse({"error": "Invalid signature"}, status_code=401)

    try:
        update = notion_handler.parse_event(data)
    except ValueError as e:
        logger.warning("Rejected malformed Notion payload: %s", e)
        return JSONResponse({"error": "Invalid payload"}, status_code=400)

    category = classify(update.text, rules)
    message = notion_update_embed(update, category, user_mapping=config.relay.user_mapping)

    try:
        await discord_webhook.asend(message)
    except (DiscordAPIError, httpx.HTTPError) as e:
        logger.error("Error processing webhook: %s", e)
        return JSONResponse({"error": "Failed to process webhook"}, status_code=500)

    logger.info("Forwarded %s for page %s (%s)", update.type, update.page.id, category)
    return JSONResponse({"success": True})


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the relay server"""
    import uvicorn

    configure_logging("relay")

    cfg = load_config()
    init_state(cfg)
    port = cfg.relay.port

    logger.info("Webhook handler running on port %d", port)
    logger.info("Webhook endpoint: http://localhost:%d/notion-webhook", port)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
