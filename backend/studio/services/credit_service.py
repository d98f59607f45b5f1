"""
Credit service for managing the XP balance.
Provides atomic debit/credit operations with safety checks.
XP is a simple integer; each paid action debits a fixed or model-specific amount.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from studio.models.user import User


class InsufficientXPError(Exception):
    """Raised when a user's XP balance is below the cost of an action."""

    def __init__(self, required: int, current: int):
        self.required = required
        self.current = current
        super().__init__(f"Insufficient XP: required {required}, current {current}")

    def to_detail(self) -> dict:
        return {
            "error": "Insufficient XP",
            "required": self.required,
            "current": self.current,
        }


class CreditService:
    """Service for XP management with atomic operations."""

    @staticmethod
    async def has_xp(db: AsyncSession, user_id: int, amount: int) -> bool:
        """
        Check if user has sufficient XP.

        Returns:
            True if user has >= amount XP
        """
        result = await db.execute(
            select(User.xp).where(User.id == user_id)
        )
        xp = result.scalar_one_or_none()

        if xp is None:
            return False

        return xp >= amount

    @staticmethod
    async def debit(db: AsyncSession, user_id: int, amount: int, commit: bool = True) -> bool:
        """
        Atomically debit XP from user balance.
        Prevents negative balances.

        Args:
            db: Database session
            user_id: User ID
            amount: XP to debit
            commit: Commit immediately. Pass False to debit inside a larger
                transaction (the caller commits or rolls back).

        Returns:
            True if debit successful, False if insufficient XP

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("Cannot debit negative amount")

        # Atomic update: only decrement if balance >= amount
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .where(User.xp >= amount)
            .values(xp=User.xp - amount)
            .execution_options(synchronize_session=False)
        )

        if commit:
            await db.commit()

        return result.rowcount > 0

    @staticmethod
    async def credit(db: AsyncSession, user_id: int, amount: int, commit: bool = True) -> None:
        """
        Credit (add) XP to user balance.

        Raises:
            ValueError: If amount is negative or zero
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        # Atomic increment
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(xp=User.xp + amount)
            .execution_options(synchronize_session=False)
        )

        if commit:
            await db.commit()

    @staticmethod
    async def get_balance(db: AsyncSession, user_id: int) -> int:
        """
        Get current XP balance for user.

        Returns:
            Current XP balance (0 if user not found)
        """
        result = await db.execute(
            select(User.xp).where(User.id == user_id)
        )
        xp = result.scalar_one_or_none()
        return xp or 0

    @staticmethod
    async def debit_or_raise(db: AsyncSession, user_id: int, amount: int, commit: bool = True) -> None:
        """
        Debit XP or raise InsufficientXPError carrying the current balance.
        With commit=False the failed debit leaves nothing to roll back.
        """
        if not await CreditService.debit(db, user_id, amount, commit=commit):
            current = await CreditService.get_balance(db, user_id)
            raise InsufficientXPError(required=amount, current=current)
