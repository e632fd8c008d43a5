import logging
import math
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from schemas import JournalEntry, Theme, User, parse_timestamp

logger = logging.getLogger(__name__)

ENTRIES_KEY = "ed_entries"
USER_KEY = "ed_user"
THEME_KEY = "ed_theme"

_entries_adapter = TypeAdapter(list[JournalEntry])

DAY_SECONDS = 24 * 60 * 60


def _utc_now():
    return datetime.now(timezone.utc)


class JournalStore:
    """Entries, profile and theme kept as JSON documents in a key/value store.

    Reads never raise: a missing or unreadable document is treated as absent
    and replaced by the empty/default value.
    """

    def __init__(self, kv, clock=None):
        self.kv = kv
        self.clock = clock or _utc_now

    def _read(self, key):
        try:
            return self.kv.get(key)
        except SQLAlchemyError as e:
            logger.warning("Reading %s failed, treating as absent: %s", key, e)
            return None

    # ---------- Entries ----------

    def get_entries(self):
        """All entries, newest first (index 0 is the most recently saved)."""
        raw = self._read(ENTRIES_KEY)
        if raw is None:
            return []
        try:
            return _entries_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Stored entries unreadable, treating as empty: %s", e)
            return []

    def save_entry(self, entry):
        entries = [entry, *self.get_entries()]
        self.kv.set(ENTRIES_KEY, _entries_adapter.dump_json(entries, by_alias=True).decode())
        self.update_streak()

    # ---------- User ----------

    def get_user(self):
        """Stored profile, or a freshly persisted default one."""
        raw = self._read(USER_KEY)
        if raw is not None:
            try:
                return User.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Stored user unreadable, resetting profile: %s", e)

        user = User.default()
        self.save_user(user)
        return user

    def save_user(self, user):
        self.kv.set(USER_KEY, user.model_dump_json(by_alias=True, exclude_none=True))

    def update_streak(self):
        entries = self.get_entries()
        if not entries:
            return
        user = self.get_user()
        newest = entries[0]

        elapsed = abs((self.clock() - parse_timestamp(newest.timestamp)).total_seconds())
        diff_days = math.ceil(elapsed / DAY_SECONDS)

        if diff_days <= 1:
            user.streak += 1
        else:
            user.streak = 1
        user.last_entry_date = newest.timestamp
        self.save_user(user)

    # ---------- Theme ----------

    def get_theme(self):
        raw = self._read(THEME_KEY)
        if raw is None:
            return Theme.LIGHT
        try:
            return Theme(raw)
        except ValueError:
            logger.warning("Stored theme unreadable: %r", raw)
            return Theme.LIGHT

    def save_theme(self, theme):
        self.kv.set(THEME_KEY, Theme(theme).value)

    def toggle_theme(self):
        theme = Theme.DARK if self.get_theme() is Theme.LIGHT else Theme.LIGHT
        self.save_theme(theme)
        return theme

    # ---------- Purge ----------

    def clear_data(self):
        """Drop every entry and the profile. Irreversible; theme is kept."""
        self.kv.remove(ENTRIES_KEY)
        self.kv.remove(USER_KEY)
        logger.info("Journal history purged")
