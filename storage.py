from collections import OrderedDict

from settings import DEFAULT_TICKET_CACHE_SIZE, LANGUAGES


# =========================
# SESSIONS
# user_id -> language
# =========================
class SessionStore:
    def __init__(self):
        self._languages: dict[int, str] = {}

    def get(self, user_id: int) -> str | None:
        return self._languages.get(user_id)

    def set(self, user_id: int, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"unsupported language: {language!r}")
        self._languages[user_id] = language

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._languages

    def __len__(self) -> int:
        return len(self._languages)


# =========================
# TICKETS
# (responder_id, bot_message_id) -> target user_id
# =========================
class TicketStore:
    """
    Correlates messages the bot sent to an operator with the user they concern.

    The table is bounded: once `max_entries` is reached the oldest entry is
    evicted. Lookups do not refresh an entry, so eviction follows creation
    order.
    """

    def __init__(self, max_entries: int = DEFAULT_TICKET_CACHE_SIZE):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple[int, int], int] = OrderedDict()

    def put(self, responder_id: int, message_id: int, target_user_id: int) -> None:
        key = (responder_id, message_id)
        self._entries[key] = target_user_id
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def resolve(self, responder_id: int, message_id: int) -> int | None:
        return self._entries.get((responder_id, message_id))

    def __len__(self) -> int:
        return len(self._entries)
