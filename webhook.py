import asyncio
import hashlib
import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from aiohttp import web

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError, TelegramRetryAfter

from settings import Settings


log = logging.getLogger("relay-bot.webhook")

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@dataclass(frozen=True)
class WebhookTarget:
    url: str
    path: str
    port: int


BOT_KEY = web.AppKey("bot", Bot)
DISPATCHER_KEY = web.AppKey("dispatcher", Dispatcher)
TARGET_KEY = web.AppKey("target", WebhookTarget)
SECRET_KEY = web.AppKey("secret", str)


def token_path(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]
    return f"/webhook/{digest}"


def resolve_webhook(settings: Settings) -> WebhookTarget | None:
    """
    Webhook target for the configured public URL, or None for long polling.

    A path already present in WEBHOOK_URL wins, then WEBHOOK_PATH, then a
    path derived from the bot token.
    """
    if not settings.webhook_url:
        return None

    base = settings.webhook_url.rstrip("/")
    explicit = urlsplit(settings.webhook_url).path.rstrip("/")
    if explicit:
        return WebhookTarget(url=base, path=explicit, port=settings.port)

    if settings.webhook_path:
        path = "/" + settings.webhook_path.strip("/")
    else:
        path = token_path(settings.bot_token)
    return WebhookTarget(url=f"{base}{path}", path=path, port=settings.port)


# =========================
# RECONCILIATION
# =========================
async def ensure_webhook(bot: Bot, url: str, secret: str | None = None) -> bool:
    """
    Register `url` as the bot webhook unless it is already registered.

    Returns True when a registration call went through. A rate-limited
    query or registration is never retried.
    """
    try:
        info = await bot.get_webhook_info()
    except TelegramRetryAfter as exc:
        log.warning("Webhook status query rate limited (retry after %ss), registration skipped", exc.retry_after)
        return False
    except TelegramAPIError as exc:
        log.warning("Webhook status query failed: %s; registering blindly", exc)
    else:
        if (info.url or "") == url:
            log.info("Webhook OK: %s (pending=%s)", url, info.pending_update_count)
            return False
        log.info("Webhook mismatch: registered=%s desired=%s", info.url or "-", url)

    try:
        await bot.set_webhook(url, secret_token=secret, max_connections=1)
    except TelegramRetryAfter as exc:
        log.warning("Webhook registration rate limited (retry after %ss), not retrying", exc.retry_after)
        return False

    log.info("Webhook set: %s", url)
    return True


# =========================
# WEBHOOK SERVER
# =========================
async def on_startup(app: web.Application):
    await ensure_webhook(app[BOT_KEY], app[TARGET_KEY].url, app[SECRET_KEY])


async def on_shutdown(app: web.Application):
    # the webhook stays registered so the next start can skip re-registration
    await app[BOT_KEY].session.close()


async def handle_webhook(request: web.Request):
    secret = request.app[SECRET_KEY]
    if secret and request.headers.get(SECRET_HEADER, "") != secret:
        return web.Response(status=403, text="Forbidden")

    update = await request.json()
    await request.app[DISPATCHER_KEY].feed_raw_update(request.app[BOT_KEY], update)
    return web.Response(text="ok")


def build_app(bot: Bot, dp: Dispatcher, target: WebhookTarget, secret: str | None = None) -> web.Application:
    app = web.Application()
    app[BOT_KEY] = bot
    app[DISPATCHER_KEY] = dp
    app[TARGET_KEY] = target
    app[SECRET_KEY] = secret
    app.router.add_post(target.path, handle_webhook)
    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)
    return app


async def run_webhook(bot: Bot, dp: Dispatcher, target: WebhookTarget, secret: str | None = None):
    app = build_app(bot, dp, target, secret)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host="0.0.0.0", port=target.port)
    await site.start()
    log.info("Webhook server listening on port %s, path %s", target.port, target.path)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


# =========================
# LONG POLLING
# =========================
async def run_polling(bot: Bot, dp: Dispatcher):
    # drop the stale webhook and anything queued while the process was down
    await bot.delete_webhook(drop_pending_updates=True)
    log.info("Long polling started")
    # one update at a time keeps each user's messages in arrival order
    await dp.start_polling(bot, handle_as_tasks=False)
