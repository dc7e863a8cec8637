from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup


# =========================
# CALLBACK DATA
# =========================
LANG_PREFIX = "lang:"
REPLY_PREFIX = "reply:"


def reply_data(user_id: int) -> str:
    return f"{REPLY_PREFIX}{user_id}"


def parse_reply_data(data: str) -> int | None:
    """Target user id encoded in a reply-request button, None if malformed."""
    raw = data[len(REPLY_PREFIX):] if data.startswith(REPLY_PREFIX) else ""
    try:
        return int(raw)
    except ValueError:
        return None


# =========================
# CONTENT
# =========================
LANGUAGE_PROMPT = "Выберите язык / Choose your language:"
LANGUAGE_REMINDER = "Сначала выберите язык / Please choose your language first:"
OPERATORS_ONLY = "Только для операторов / Operators only."

LANGUAGE_CONFIRMED = {
    "ru": "Язык установлен: Русский. Напишите ваш вопрос.",
    "en": "Language set: English. Please send your question.",
}

NOTIFICATION_INTRO = {
    "ru": "Новый запрос от пользователя @{handle} (id: {user_id}):",
    "en": "New request from user @{handle} (id: {user_id}):",
}

ACKNOWLEDGMENT = {
    "ru": "Спасибо! Поддержка скоро ответит.",
    "en": "Thanks! Support will reply shortly.",
}

REPLY_BUTTON = {
    "ru": "✉️ Ответить пользователю",
    "en": "✉️ Reply to this user",
}

REPLY_PROMPT = {
    "ru": "Напишите ответ пользователю {user_id} как <b>ответ на это</b> сообщение.",
    "en": "Type your reply to user {user_id} as a <b>reply to this</b> message.",
}


def language_prompt() -> str:
    return LANGUAGE_PROMPT


def language_reminder() -> str:
    return LANGUAGE_REMINDER


def operators_only() -> str:
    return OPERATORS_ONLY


def language_confirmed(lang: str) -> str:
    return LANGUAGE_CONFIRMED[lang]


def acknowledgment(lang: str) -> str:
    return ACKNOWLEDGMENT[lang]


def notification(lang: str, handle: str | None, user_id: int, text: str) -> str:
    """Operator-facing message: localized intro line, blank line, the user's raw text."""
    intro = NOTIFICATION_INTRO[lang].format(handle=handle or "unknown", user_id=user_id)
    return f"{intro}\n\n{text}"


def reply_prompt(lang: str, user_id: int) -> str:
    return REPLY_PROMPT[lang].format(user_id=user_id)


# =========================
# KEYBOARDS
# =========================
def kb_languages():
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🇷🇺 Русский", callback_data=f"{LANG_PREFIX}ru")],
        [InlineKeyboardButton(text="🇬🇧 English", callback_data=f"{LANG_PREFIX}en")],
    ])


def kb_reply(lang: str, user_id: int):
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=REPLY_BUTTON[lang], callback_data=reply_data(user_id))],
    ])
