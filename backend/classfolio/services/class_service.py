import logging
import re
import secrets
import string
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.database import AsyncSessionLocal
from classfolio.core.exceptions import (
    AlreadyMember,
    ClassInactive,
    InvalidArgument,
    InvalidInviteCode,
    LeaveNotAllowed,
    NotFound,
)
from classfolio.core.metrics import metrics
from classfolio.core.redis import StreamNames, publish_event
from classfolio.models.base import STARTING_BALANCE, utcnow
from classfolio.models.class_membership import ClassMembership
from classfolio.models.school_class import SchoolClass

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 6
INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")
MAX_INVITE_CODE_ATTEMPTS = 10


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


class ClassService:
    """Manage classes, invite codes and append-only memberships."""

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session

    async def create_class(
        self,
        name: str,
        semester: str,
        start_date: date,
        end_date: date,
        is_active: bool = True,
    ) -> SchoolClass:
        if not name or not name.strip():
            raise InvalidArgument("Class name is required")
        if end_date < start_date:
            raise InvalidArgument("Class end date must not precede its start date")

        async with self._get_session() as session:
            invite_code = await self._unused_invite_code(session)
            school_class = SchoolClass(
                name=name.strip(),
                semester=semester,
                start_date=start_date,
                end_date=end_date,
                invite_code=invite_code,
                is_active=is_active,
            )
            session.add(school_class)
            await session.flush()
            await session.refresh(school_class)
            logger.info(f"Created class {school_class.name} with invite code {invite_code}")
            return school_class

    async def list_classes(self, is_active: Optional[bool] = None) -> list[SchoolClass]:
        async with self._get_session() as session:
            stmt = select(SchoolClass)
            if is_active is not None:
                stmt = stmt.where(SchoolClass.is_active.is_(is_active))
            result = await session.execute(stmt.order_by(SchoolClass.created_at.desc()))
            return list(result.scalars().all())

    async def get_class(self, class_id: UUID) -> SchoolClass:
        async with self._get_session() as session:
            result = await session.execute(select(SchoolClass).where(SchoolClass.id == class_id))
            school_class = result.scalar_one_or_none()
            if school_class is None:
                raise NotFound(f"Class {class_id} not found")
            return school_class

    async def get_class_by_invite_code(self, invite_code: str) -> SchoolClass:
        code = (invite_code or "").strip().upper()
        if not code:
            raise InvalidArgument("Invite code is required")
        if not INVITE_CODE_PATTERN.match(code):
            raise InvalidInviteCode("Invalid invite code format")

        async with self._get_session() as session:
            result = await session.execute(select(SchoolClass).where(SchoolClass.invite_code == code))
            school_class = result.scalar_one_or_none()
            if school_class is None:
                raise InvalidInviteCode("Invalid invite code", code="INVALID_CODE")
            return school_class

    async def join_class(self, user_id: UUID, invite_code: str) -> ClassMembership:
        """
        Join the class behind invite_code with the standard starting balance.
        The (user_id, class_id) unique constraint is the final duplicate check.
        """
        school_class = await self.get_class_by_invite_code(invite_code)
        if not school_class.is_active:
            raise ClassInactive("Class is not currently active")

        async with self._get_session() as session:
            if await self._membership(session, school_class.id, user_id) is not None:
                raise AlreadyMember("Already member of this class")

            membership = ClassMembership(
                user_id=user_id,
                class_id=school_class.id,
                starting_balance=STARTING_BALANCE,
                joined_at=utcnow(),
            )
            try:
                async with session.begin_nested():
                    session.add(membership)
            except IntegrityError as e:
                raise AlreadyMember("Already member of this class") from e
            await session.refresh(membership, ["school_class"])

        metrics.member_joined(str(school_class.id))
        await publish_event(StreamNames.CLASS_MEMBERSHIPS, "member_joined", {
            "class_id": school_class.id,
            "user_id": user_id,
        })
        return membership

    async def get_user_memberships(self, user_id: UUID) -> list[ClassMembership]:
        async with self._get_session() as session:
            result = await session.execute(
                select(ClassMembership)
                .where(ClassMembership.user_id == user_id)
                .order_by(ClassMembership.joined_at.desc())
            )
            return list(result.scalars().all())

    async def get_class_members(self, class_id: UUID) -> list[ClassMembership]:
        async with self._get_session() as session:
            result = await session.execute(
                select(ClassMembership)
                .where(ClassMembership.class_id == class_id)
                .order_by(ClassMembership.joined_at.asc())
            )
            return list(result.scalars().all())

    async def is_member(self, class_id: UUID, user_id: UUID) -> bool:
        async with self._get_session() as session:
            return await self._membership(session, class_id, user_id) is not None

    async def leave_class(self, class_id: UUID, user_id: UUID) -> None:
        """Memberships are permanent for the duration of a class."""
        raise LeaveNotAllowed("Leaving classes is not allowed")

    async def _membership(
        self, session: AsyncSession, class_id: UUID, user_id: UUID
    ) -> Optional[ClassMembership]:
        result = await session.execute(
            select(ClassMembership).where(
                ClassMembership.class_id == class_id,
                ClassMembership.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _unused_invite_code(self, session: AsyncSession) -> str:
        for _ in range(MAX_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            result = await session.execute(
                select(SchoolClass.id).where(SchoolClass.invite_code == code)
            )
            if result.scalar_one_or_none() is None:
                return code
        raise RuntimeError("Could not generate a unique invite code")

    @asynccontextmanager
    async def _get_session(self):
        if self.session is not None:
            yield self.session
        else:
            async with AsyncSessionLocal() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
