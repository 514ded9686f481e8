"""
User service.

Validates and orchestrates repository calls for each user use case.
"""

import asyncio
import dataclasses
import logging
import secrets
from dataclasses import dataclass, field

import bcrypt

from ..constants import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PASSWORD_ROUNDS,
    GENERATED_PASSWORD_ALPHABET,
    GENERATED_PASSWORD_LENGTH,
    INT64_MAX,
    MAX_PAGE_SIZE,
)
from ..exceptions import DuplicateKeyError, InvalidArgumentError, NotFoundError
from ..observability import get_logger, timed_operation
from ..repositories import User, UserLookup

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)


@dataclass
class Page:
    """One page of users plus the pagination actually applied."""

    items: list[User] = field(default_factory=list)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_PAGE_SIZE
    total: int = 0


@dataclass
class UserChanges:
    """Fields a caller may change on update; None leaves a field untouched."""

    name: str | None = None
    email: str | None = None
    password: str | None = None


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """Random alphanumeric password for users created without one."""
    return "".join(secrets.choice(GENERATED_PASSWORD_ALPHABET) for _ in range(length))


def hash_password(password: str, rounds: int = DEFAULT_PASSWORD_ROUNDS) -> str:
    """Salted one-way bcrypt hash, returned as text."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


class UserService:
    """
    Business operations on users.

    The duplicate-email check in ``create`` and the following insert are two
    separate store calls, so two concurrent creates with the same email can
    both succeed unless the collection has a unique index on ``email``
    (see UserRepository.ensure_indexes).
    """

    def __init__(
        self,
        repository: UserLookup,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
        password_rounds: int = DEFAULT_PASSWORD_ROUNDS,
    ):
        self._repository = repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._password_rounds = password_rounds

    def normalize_pagination(self, page: int, limit: int) -> tuple[int, int]:
        """
        Clamp page to >= 1 and limit to [1, max_page_size], defaulting bad limits.

        The page is also capped so that the number of skipped documents
        fits a signed 64-bit integer.
        """
        if page < 1:
            page = DEFAULT_PAGE
        if limit < 1:
            limit = self._default_page_size
        if limit > self._max_page_size:
            limit = self._max_page_size
        if (page - 1) * limit > INT64_MAX:
            page = INT64_MAX // limit + 1
        return page, limit

    async def get_by_id(self, id: str, *, timeout: float | None = None) -> User:
        return await self._repository.find_by_id(id, timeout=timeout)

    async def get_by_email(self, email: str, *, timeout: float | None = None) -> User:
        return await self._repository.find_by_email(email, timeout=timeout)

    async def count(self, *, timeout: float | None = None) -> int:
        return await self._repository.count(timeout=timeout)

    @timed_operation("service.users.list")
    async def list(self, page: int, limit: int, *, timeout: float | None = None) -> Page:
        """
        Get one page of users.

        ``page < 1`` becomes 1, ``limit < 1`` becomes the default page size
        and ``limit`` is capped at the maximum page size.
        """
        page, limit = self.normalize_pagination(page, limit)
        items = await self._repository.find_all(page, limit, timeout=timeout)
        total = await self._repository.count(timeout=timeout)
        return Page(items=items, page=page, limit=limit, total=total)

    async def _ensure_email_available(
        self, email: str, owner_id: str | None = None, timeout: float | None = None
    ) -> None:
        try:
            existing = await self._repository.find_by_email(email, timeout=timeout)
        except NotFoundError:
            return
        if owner_id is None or existing.id != owner_id:
            raise DuplicateKeyError(
                f"user with email {email} already exists",
                operation="create" if owner_id is None else "update",
                collection=getattr(self._repository, "collection_name", None),
                context={"email": email},
            )

    @staticmethod
    def _require_email(email: str | None) -> str:
        email = (email or "").strip()
        if not email:
            raise InvalidArgumentError("Email is required", field="email")
        return email

    async def _hash(self, password: str) -> str:
        # bcrypt blocks for the whole cost factor
        return await asyncio.to_thread(hash_password, password, self._password_rounds)

    @timed_operation("service.users.create")
    async def create(self, candidate: User, *, timeout: float | None = None) -> User:
        """
        Create a user.

        ``candidate.password`` is left as given until the insert succeeds, so
        a failed create can be retried with the same candidate.

        Raises:
            InvalidArgumentError: If the email is blank
            DuplicateKeyError: If a user with the same email exists
        """
        candidate.email = self._require_email(candidate.email)
        await self._ensure_email_available(candidate.email, timeout=timeout)

        password = candidate.password or generate_password()
        stored = dataclasses.replace(candidate, password=await self._hash(password))

        contextual_logger.info("Creating user", extra={"email": stored.email})
        await self._repository.create(stored, timeout=timeout)

        candidate.id = stored.id
        candidate.password = stored.password
        candidate.created_at = stored.created_at
        candidate.updated_at = stored.updated_at
        contextual_logger.info(
            "User created", extra={"user_id": candidate.id, "email": candidate.email}
        )
        return candidate

    @timed_operation("service.users.update")
    async def update(
        self, id: str, changes: UserChanges, *, timeout: float | None = None
    ) -> User:
        """
        Apply ``changes`` to an existing user.

        A new password equal to the current one keeps the stored hash.

        Raises:
            InvalidArgumentError: If the new email is blank
            InvalidIdentityError: If id is malformed
            NotFoundError: If the user does not exist
            DuplicateKeyError: If the new email belongs to another user
        """
        email = self._require_email(changes.email) if changes.email is not None else None
        user = await self._repository.find_by_id(id, timeout=timeout)

        if email is not None and email != user.email:
            await self._ensure_email_available(email, owner_id=user.id, timeout=timeout)
            user.email = email
        if changes.name is not None:
            user.name = changes.name
        if changes.password and not await asyncio.to_thread(
            self.verify_password, user, changes.password
        ):
            user.password = await self._hash(changes.password)

        await self._repository.update(id, user, timeout=timeout)
        contextual_logger.info("User updated", extra={"user_id": user.id})
        return user

    async def delete(self, id: str, *, timeout: float | None = None) -> None:
        """Delete a user; deleting a missing user succeeds."""
        await self._repository.delete(id, timeout=timeout)
        contextual_logger.info("User deleted", extra={"user_id": id})

    def verify_password(self, user: User, password: str) -> bool:
        """Check ``password`` against the stored hash of ``user``."""
        return check_password(password, user.password)
