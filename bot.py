import asyncio
import logging

from dotenv import load_dotenv

from aiogram import Bot, Dispatcher, F, Router
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import CommandStart
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import CallbackQuery, ErrorEvent, Message

import texts
from settings import ConfigError, LANGUAGES, Settings, load_settings, log_level, operator_language
from storage import SessionStore, TicketStore
from webhook import resolve_webhook, run_polling, run_webhook


log = logging.getLogger("relay-bot")


# =========================
# LANGUAGE SELECTION
# =========================
async def on_language_selected(cb: CallbackQuery, sessions: SessionStore):
    lang = cb.data[len(texts.LANG_PREFIX):]
    if lang not in LANGUAGES:
        await cb.answer()
        return

    sessions.set(cb.from_user.id, lang)
    log.info("User %s selected language %s", cb.from_user.id, lang)

    await cb.answer()
    if cb.message is None:
        return
    try:
        await cb.message.edit_text(texts.language_confirmed(lang))
    except TelegramBadRequest as exc:
        if "message is not modified" not in str(exc).lower():
            raise
        log.debug("Language confirmation for user %s already shown", cb.from_user.id)


# =========================
# OPERATOR: "REPLY TO THIS USER"
# =========================
async def on_reply_request(cb: CallbackQuery, bot: Bot, tickets: TicketStore, operators: dict[str, int]):
    operator_lang = operator_language(operators, cb.from_user.id)
    if operator_lang is None:
        log.warning("Reply request from non-operator %s rejected", cb.from_user.id)
        await cb.answer(texts.operators_only(), show_alert=True)
        return

    user_id = texts.parse_reply_data(cb.data)
    if user_id is None:
        log.warning("Malformed reply request %r from operator %s", cb.data, cb.from_user.id)
        await cb.answer()
        return

    await cb.answer()
    prompt = await bot.send_message(
        cb.from_user.id,
        texts.reply_prompt(operator_lang, user_id),
        parse_mode=ParseMode.HTML,
    )
    tickets.put(cb.from_user.id, prompt.message_id, user_id)


# =========================
# OPERATOR -> USER
# =========================
async def on_operator_reply(message: Message, bot: Bot, tickets: TicketStore):
    replied = message.reply_to_message
    if replied is None:
        log.debug("Operator %s message is not a reply, dropped", message.from_user.id)
        return

    user_id = tickets.resolve(message.from_user.id, replied.message_id)
    if user_id is None:
        log.debug("Operator %s replied to untracked message %s", message.from_user.id, replied.message_id)
        return

    await bot.send_message(user_id, message.text)
    log.info("Operator %s reply delivered to user %s", message.from_user.id, user_id)


# =========================
# USER -> OPERATOR
# =========================
async def on_start(message: Message):
    await message.answer(texts.language_prompt(), reply_markup=texts.kb_languages())


async def on_user_message(
    message: Message,
    bot: Bot,
    sessions: SessionStore,
    tickets: TicketStore,
    operators: dict[str, int],
):
    user = message.from_user
    lang = sessions.get(user.id)
    if lang is None:
        await message.answer(texts.language_reminder(), reply_markup=texts.kb_languages())
        return

    operator_id = operators[lang]
    sent = await bot.send_message(
        operator_id,
        texts.notification(lang, user.username, user.id, message.text),
        reply_markup=texts.kb_reply(lang, user.id),
    )
    tickets.put(operator_id, sent.message_id, user.id)
    log.info("User %s request forwarded to %s operator %s", user.id, lang, operator_id)

    await message.answer(texts.acknowledgment(lang))


# =========================
# ERRORS
# =========================
async def on_error(event: ErrorEvent) -> bool:
    update = event.update
    user_id = None
    if update.message and update.message.from_user:
        user_id = update.message.from_user.id
    elif update.callback_query and update.callback_query.from_user:
        user_id = update.callback_query.from_user.id

    log.error(
        "Failed to handle update_id=%s user_id=%s: %r",
        update.update_id,
        user_id,
        event.exception,
        exc_info=event.exception,
    )
    return True


# =========================
# BOT / DISPATCHER
# =========================
def build_router(operator_ids: set[int]) -> Router:
    """
    Handlers are registered in priority order, first match wins.

    Operator messages are matched before anything else so an operator's
    own reply is never treated as a new support request.
    """
    router = Router(name="relay")
    is_operator = F.from_user.id.in_(operator_ids)

    router.callback_query.register(on_language_selected, F.data.startswith(texts.LANG_PREFIX))
    router.callback_query.register(on_reply_request, F.data.startswith(texts.REPLY_PREFIX))

    router.message.register(on_operator_reply, is_operator, F.text)
    router.message.register(on_start, CommandStart())
    router.message.register(on_user_message, F.text)

    router.errors.register(on_error)
    return router


def build_dispatcher(
    settings: Settings,
    sessions: SessionStore | None = None,
    tickets: TicketStore | None = None,
) -> Dispatcher:
    dp = Dispatcher(
        storage=MemoryStorage(),
        sessions=sessions if sessions is not None else SessionStore(),
        tickets=tickets if tickets is not None else TicketStore(settings.ticket_cache_size),
        operators=dict(settings.operators),
    )
    dp.include_router(build_router(settings.operator_ids))
    return dp


# =========================
# MAIN
# =========================
async def main():
    load_dotenv()
    logging.basicConfig(level=log_level())

    try:
        settings = load_settings()
    except ConfigError as exc:
        log.error("Configuration error: %s", exc)
        raise SystemExit(1)

    bot = Bot(settings.bot_token)
    dp = build_dispatcher(settings)

    target = resolve_webhook(settings)
    log.info(
        "Bot starting... mode=%s OPERATORS=%s",
        "webhook" if target else "polling",
        settings.operators,
    )

    if target is None:
        await run_polling(bot, dp)
    else:
        await run_webhook(bot, dp, target, settings.webhook_secret)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
