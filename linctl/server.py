"""FastAPI app receiving Linear webhook deliveries."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import BackgroundTasks, FastAPI, Header, Request, Response

from linctl import __version__
from linctl.errors import Unauthenticated
from linctl.settings import LinctlSettings
from linctl.webhook import ForwardRelay, WebhookGate, now_ms

logger = logging.getLogger(__name__)


def _relay_from_settings(settings: LinctlSettings) -> ForwardRelay | None:
    if not settings.forward_url:
        return None
    secret = settings.forward_signing_secret.get_secret_value() if settings.forward_signing_secret else None
    return ForwardRelay(settings.forward_url, signing_secret=secret)


def create_app(
    settings: LinctlSettings,
    relay: ForwardRelay | None = None,
    clock: Callable[[], float] = now_ms,
) -> FastAPI:
    webhook_secret = settings.webhook_secret.get_secret_value() if settings.webhook_secret else None
    gate = WebhookGate(webhook_secret, clock=clock)
    relay = relay or _relay_from_settings(settings)

    app = FastAPI(title=settings.server_name, version=__version__)

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "name": settings.server_name, "version": __version__}

    @app.post("/webhooks/linear")
    async def linear_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        linear_signature: Annotated[str | None, Header()] = None,
    ) -> Response:
        body = await request.body()
        try:
            payload = gate.authenticate(body, linear_signature)
        except Unauthenticated as exc:
            # Bare 401; the reason only goes to the log
            logger.warning("Rejected webhook delivery: %s", exc.reason)
            return Response(status_code=401)

        logger.info("Accepted %s %s webhook", payload.get("type", "unknown"), payload.get("action", ""))
        if relay is not None:
            background_tasks.add_task(relay.deliver, relay.build(body))
        return Response(status_code=200)

    return app
