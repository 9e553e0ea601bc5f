"""Paste store: creation, gated viewing, listing, deletion and expiry."""

import logging
from typing import Callable, List, Optional

from databases import Database
from sqlalchemy import and_, delete, insert, or_, select, update

from db_sqlalchemy import pastes
from errors import (Forbidden, PasswordIncorrect, PasswordRequired,
                    PasteNotFound, PersistenceFailed)
from expiration import parse, to_absolute, utc_now
from ids import generate_id
from models_sql import Paste, PasteView
from passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_ID_ATTEMPTS = 10

PASTE_COLUMNS = ("id", "content", "language", "password_hash", "expires_at",
                 "created_at", "view_count", "owner_id")


def row_to_paste(row) -> Paste:
    return Paste(**{name: row[name] for name in PASTE_COLUMNS})


class PasteStore:
    """CRUD over the ``pastes`` table plus the password gate and ownership rules.

    ``clock`` returns naive UTC "now"; tests swap it to move time forward.
    """

    def __init__(self, database: Database, clock: Callable = utc_now,
                 id_factory: Callable[[], str] = generate_id):
        self.database = database
        self.clock = clock
        self.id_factory = id_factory

    async def _exists(self, paste_id: str) -> bool:
        q = select(pastes.c.id).where(pastes.c.id == paste_id)
        return await self.database.fetch_one(q) is not None

    async def _unique_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            paste_id = self.id_factory()
            if not await self._exists(paste_id):
                return paste_id
        raise PersistenceFailed(f"Could not generate a unique paste id after {MAX_ID_ATTEMPTS} attempts")

    async def create(self, content: str, language: Optional[str] = None,
                     password: Optional[str] = None, expiration: Optional[str] = None,
                     owner_id: Optional[int] = None) -> str:
        """Store a new paste and return its public id.

        An empty password means no password. A missing expiration token
        means the paste never expires.
        """
        password_hash = hash_password(password) if password else None
        now = self.clock()
        expires_at = to_absolute(parse(expiration), now)

        try:
            paste_id = await self._unique_id()
            q = insert(pastes).values(
                id=paste_id,
                content=content,
                language=language,
                password_hash=password_hash,
                expires_at=expires_at,
                created_at=now,
                view_count=0,
                owner_id=owner_id,
            )
            await self.database.execute(q)
        except PersistenceFailed:
            raise
        except Exception as e:
            logger.error(f"Failed to save paste: {e}")
            raise PersistenceFailed("Failed to create paste") from e

        logger.info(f"Paste created: {paste_id} (owner={owner_id}, expires_at={expires_at})")
        return paste_id

    async def get(self, paste_id: str) -> Paste:
        q = select(pastes).where(pastes.c.id == paste_id)
        row = await self.database.fetch_one(q)
        if row is None:
            raise PasteNotFound(paste_id)
        return row_to_paste(row)

    async def _get_live(self, paste_id: str) -> Paste:
        """Fetch a paste, deleting it instead if it has expired."""
        paste = await self.get(paste_id)
        if paste.is_expired(self.clock()):
            await self._delete_row(paste_id)
            logger.info(f"Paste expired on access: {paste_id}")
            raise PasteNotFound(paste_id)
        return paste

    async def _delete_row(self, paste_id: str) -> None:
        # deleting an already removed row is a no-op
        await self.database.execute(delete(pastes).where(pastes.c.id == paste_id))

    async def _increment_views(self, paste_id: str) -> bool:
        q = (
            update(pastes)
            .where(pastes.c.id == paste_id)
            .values(view_count=pastes.c.view_count + 1)
        )
        try:
            await self.database.execute(q)
        except Exception as e:
            logger.warning(f"Failed to increment view count for {paste_id}: {e}")
            return False
        return True

    async def view(self, paste_id: str, current_user_id: Optional[int] = None,
                   password: Optional[str] = None) -> PasteView:
        """Open a paste for display.

        The owner skips the password gate. Anyone else must supply the
        password; ``None`` means none was supplied. Every successful view
        bumps ``view_count``.

        Raises:
            PasteNotFound: missing or expired
            PasswordRequired: gated and no password supplied
            PasswordIncorrect: gated and the password did not verify
        """
        paste = await self._get_live(paste_id)
        is_owner = current_user_id is not None and current_user_id == paste.owner_id

        if paste.is_protected and not is_owner:
            if password is None:
                raise PasswordRequired(paste_id)
            if not verify_password(password, paste.password_hash):
                raise PasswordIncorrect(paste_id)

        if await self._increment_views(paste_id):
            paste = paste.model_copy(update={"view_count": paste.view_count + 1})
        return PasteView(paste=paste, is_owner=is_owner)

    async def raw(self, paste_id: str) -> str:
        """Plain content for unprotected pastes. Does not count as a view."""
        paste = await self._get_live(paste_id)
        if paste.is_protected:
            raise PasswordRequired(paste_id)
        return paste.content

    async def list_by_owner(self, owner_id: int, limit: int = DEFAULT_LIST_LIMIT) -> List[Paste]:
        q = (
            select(pastes)
            .where(pastes.c.owner_id == owner_id)
            .order_by(pastes.c.created_at.desc())
            .limit(limit)
        )
        rows = await self.database.fetch_all(q)
        return [row_to_paste(r) for r in rows]

    async def list_public(self, limit: int = DEFAULT_LIST_LIMIT) -> List[Paste]:
        now = self.clock()
        q = (
            select(pastes)
            .where(and_(
                pastes.c.password_hash == None,
                or_(pastes.c.expires_at == None, pastes.c.expires_at > now),
            ))
            .order_by(pastes.c.created_at.desc())
            .limit(limit)
        )
        rows = await self.database.fetch_all(q)
        return [row_to_paste(r) for r in rows]

    async def delete(self, paste_id: str, current_user_id: Optional[int] = None) -> None:
        """Delete a paste owned by ``current_user_id`` or owned by nobody.

        Raises:
            PasteNotFound: no such paste
            Forbidden: the paste belongs to someone else
        """
        paste = await self.get(paste_id)
        is_owner = current_user_id is not None and current_user_id == paste.owner_id
        if not is_owner and paste.owner_id is not None:
            raise Forbidden(paste_id)
        await self._delete_row(paste_id)
        logger.info(f"Paste deleted: {paste_id}")

    async def sweep_expired(self, now=None) -> int:
        """Delete every paste whose ``expires_at`` has passed. Returns the count."""
        if now is None:
            now = self.clock()
        expired = and_(pastes.c.expires_at != None, pastes.c.expires_at <= now)
        async with self.database.transaction():
            rows = await self.database.fetch_all(select(pastes.c.id).where(expired))
            ids = [r["id"] for r in rows]
            if ids:
                await self.database.execute(delete(pastes).where(expired))
        return len(ids)
