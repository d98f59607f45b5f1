"""
Stripe service for payment processing.
Handles XP packages, payment intent creation and payment state transitions.
"""
import stripe
import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from datetime import datetime

from studio.config import settings
from studio.models.payment import Payment, PaymentStatus
from studio.models.user import User

logger = logging.getLogger(__name__)


def _ensure_api_key() -> None:
    if not stripe.api_key or stripe.api_key != settings.stripe_secret_key:
        stripe.api_key = settings.stripe_secret_key


def _xp_for_product(product) -> Optional[int]:
    """
    XP granted by a product: "xp" metadata, else a numeric product name
    (e.g. "100"). None when neither yields a positive integer.
    """
    metadata = product.metadata or {}

    xp = None
    if 'xp' in metadata:
        try:
            xp = int(metadata.get('xp', 0))
        except (ValueError, TypeError):
            xp = None

    if not xp:
        try:
            xp = int(product.name.strip())
        except (ValueError, TypeError, AttributeError):
            return None

    return xp if xp > 0 else None


def _package_from_product(product) -> Optional[Dict[str, Any]]:
    xp = _xp_for_product(product)
    if xp is None:
        logger.debug(f"Skipping product '{product.name}' - no xp metadata and name is not a number")
        return None

    default_price_id = product.default_price
    if not default_price_id:
        prices = stripe.Price.list(product=product.id, active=True, limit=1)
        if not prices.data:
            logger.debug(f"Skipping product '{product.name}' - no active prices")
            return None
        default_price_id = prices.data[0].id

    price = stripe.Price.retrieve(default_price_id)
    metadata = product.metadata or {}
    price_cents = price.unit_amount or 0

    return {
        "id": product.id,
        "name": product.name,
        "xp": xp,
        "price_cents": price_cents,
        "price_formatted": f"{price_cents / 100:.2f}",
        "currency": price.currency or 'usd',
        "description": product.description or metadata.get('description', ''),
        "popular": metadata.get('popular', 'false').lower() == 'true',
        "price_per_xp": round(price_cents / xp, 2),
        "price_id": price.id,
    }


class StripeService:
    """Service for Stripe payment operations."""

    def __init__(self):
        """Initialize Stripe with API key."""
        if settings.stripe_secret_key:
            stripe.api_key = settings.stripe_secret_key
            logger.info("Stripe initialized with secret key")
        else:
            logger.warning("Stripe secret key not configured")

    @staticmethod
    def get_packages() -> List[Dict[str, Any]]:
        """
        Get list of available XP packages from Stripe.

        Fetches active products and their prices and keeps those that
        declare an XP amount. Sorted by price.
        """
        if not settings.stripe_secret_key:
            logger.warning("Stripe not configured, returning empty packages list")
            return []

        try:
            _ensure_api_key()
            products = stripe.Product.list(active=True, limit=100)

            packages = []
            for product in products.data:
                package = _package_from_product(product)
                if package is not None:
                    packages.append(package)

            packages.sort(key=lambda x: x['price_cents'])
            logger.info(f"Retrieved {len(packages)} packages from Stripe (out of {len(products.data)} products)")
            return packages

        except stripe.error.StripeError as e:
            logger.error(f"Error fetching packages from Stripe: {e}")
            return []

    @staticmethod
    def get_package(package_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a specific XP package by Stripe Product ID.

        Returns:
            Package dictionary or None if not found
        """
        if not settings.stripe_secret_key:
            return None

        try:
            _ensure_api_key()
            product = stripe.Product.retrieve(package_id)
            return _package_from_product(product)
        except stripe.error.StripeError as e:
            logger.error(f"Error fetching package {package_id} from Stripe: {e}")
            return None

    @staticmethod
    async def create_payment_intent(
        db: AsyncSession,
        user_id: int,
        package_id: str,
    ) -> Dict[str, Any]:
        """
        Create a Stripe Payment Intent for an XP purchase and a pending Payment.

        Returns:
            Dict with client_secret and payment_intent_id

        Raises:
            ValueError: If package not found, user not found or Stripe not configured
        """
        if not settings.stripe_secret_key:
            logger.error("Stripe secret key not configured")
            raise ValueError("Stripe is not configured")

        _ensure_api_key()

        package = StripeService.get_package(package_id)
        if not package:
            raise ValueError(f"Package '{package_id}' not found")

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise ValueError("User not found")

        # Track all purchasers as Stripe customers
        if not user.stripe_customer_id:
            customer_id = await StripeService.ensure_stripe_customer(email=user.email, name=user.username)
            if customer_id:
                user.stripe_customer_id = customer_id

        intent_kwargs = {}
        if user.stripe_customer_id:
            intent_kwargs["customer"] = user.stripe_customer_id

        try:
            payment_intent = stripe.PaymentIntent.create(
                amount=package['price_cents'],
                currency=package['currency'],
                payment_method_types=["card"],
                metadata={
                    "user_id": str(user_id),
                    "xp": str(package['xp']),
                    "package_id": package_id,
                    "price_id": package['price_id'],
                },
                description=f"{settings.app_name} {package['name']} - {package['xp']} XP",
                receipt_email=user.email,
                **intent_kwargs,
            )
        except stripe.error.StripeError as e:
            error_msg = f"Stripe API error: {str(e)}"
            if getattr(e, 'user_message', None):
                error_msg = f"{error_msg} - {e.user_message}"
            logger.error(f"Stripe error creating payment intent: {error_msg}")
            raise ValueError(error_msg)

        if not payment_intent.client_secret:
            raise ValueError("Payment intent created but missing client_secret")

        payment = Payment(
            user_id=user_id,
            stripe_payment_intent_id=payment_intent.id,
            amount_cents=package['price_cents'],
            currency=package['currency'],
            xp_amount=package['xp'],
            status=PaymentStatus.PENDING,
            package_id=package_id,
        )
        db.add(payment)
        await db.commit()

        logger.info(
            f"Created payment intent {payment_intent.id} for user {user_id}, "
            f"package {package_id} ({package['xp']} XP)",
            extra={"event": "payment_intent_created", "user_id": user_id, "payment_intent_id": payment_intent.id}
        )

        return {
            "client_secret": payment_intent.client_secret,
            "payment_intent_id": payment_intent.id,
        }

    @staticmethod
    async def mark_payment_completed_by_intent(
        db: AsyncSession,
        stripe_payment_intent_id: str,
    ) -> Optional[Payment]:
        """
        Mark a payment as completed by payment intent ID (called from webhook).
        Returns the payment if found and updated, None if already processed.

        Only pending or failed payments move to completed (a retried card can
        succeed after a failure; refunded payments stay refunded). The
        transition is a conditional UPDATE, so of two concurrent deliveries
        only one gets the payment back. Does not commit; the caller commits
        together with the XP credit.
        """
        result = await db.execute(
            update(Payment)
            .where(Payment.stripe_payment_intent_id == stripe_payment_intent_id)
            .where(Payment.status.in_((PaymentStatus.PENDING, PaymentStatus.FAILED)))
            .values(status=PaymentStatus.COMPLETED, completed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info(f"Payment for intent {stripe_payment_intent_id} missing or not awaiting completion, skipping")
            return None

        result = await db.execute(
            select(Payment)
            .where(Payment.stripe_payment_intent_id == stripe_payment_intent_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @staticmethod
    async def mark_payment_failed_by_intent(
        db: AsyncSession,
        stripe_payment_intent_id: str,
    ) -> Optional[Payment]:
        """Mark a pending payment failed. Completed payments are left untouched."""
        result = await db.execute(
            select(Payment).where(
                Payment.stripe_payment_intent_id == stripe_payment_intent_id
            )
        )
        payment = result.scalar_one_or_none()
        if not payment or payment.status != PaymentStatus.PENDING:
            return None

        payment.status = PaymentStatus.FAILED
        await db.commit()
        return payment

    @staticmethod
    async def get_user_payments(
        db: AsyncSession,
        user_id: int,
        limit: int = 20,
    ) -> List[Payment]:
        """
        Get payment history for a user, newest first.
        """
        result = await db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def ensure_stripe_customer(
        email: str,
        name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Ensure a Stripe customer exists for the given email.

        Returns:
            Stripe customer ID or None if Stripe is not configured or unavailable
        """
        if not email:
            raise ValueError("Email is required to create Stripe customer")

        if not settings.stripe_secret_key:
            logger.debug("Stripe not configured, skipping customer creation")
            return None

        try:
            _ensure_api_key()

            customers = stripe.Customer.list(email=email, limit=1)
            if customers.data:
                return customers.data[0].id

            customer_data = {"email": email}
            if name:
                customer_data["name"] = name

            customer = stripe.Customer.create(**customer_data)
            logger.info(f"Created new Stripe customer {customer.id} for email {email}")
            return customer.id

        except stripe.error.StripeError as e:
            logger.error(f"Stripe error ensuring customer for {email}: {e}")
            return None


# Singleton instance
stripe_service = StripeService()
