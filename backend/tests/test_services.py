"""
Tests for service layer.
"""
import asyncio
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch, MagicMock, AsyncMock

import httpx

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from studio.ai.factory import get_image_provider
from studio.auth.security import hash_password
from studio.config import settings
from studio.models.ai_model import AIModel
from studio.models.generation import Generation, GenerationKind, GenerationStatus
from studio.models.outfit_template import OutfitTemplate
from studio.models.payment import Payment, PaymentStatus
from studio.models.prompt_view import TemplatePromptView
from studio.models.template import Template
from studio.models.user import User
from studio.services.credit_service import CreditService, InsufficientXPError
from studio.services.email_service import EmailService
from studio.services.generation_service import GenerationService, GenerationFailedError, DuplicateGenerationError
from studio.services.outfit_service import OutfitService
from studio.services.prompt_view_service import PromptViewService
from studio.services.stripe_service import StripeService, _xp_for_product
from studio.services.template_service import TemplateService
from studio.services.user_service import UserService, AuthError
from studio.services.vision_service import VisionService
from studio.storage import get_image_store
from studio.storage.local_store import LocalImageStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
GARMENT_BYTES = b"\xff\xd8\xff" + b"\x02" * 32


class TestCreditService:
    """Tests for CreditService."""

    @pytest.mark.asyncio
    async def test_has_xp(self, db_session: AsyncSession, test_user: User):
        assert await CreditService.has_xp(db_session, test_user.id, amount=10) is True
        assert await CreditService.has_xp(db_session, test_user.id, amount=11) is False

    @pytest.mark.asyncio
    async def test_has_xp_user_not_found(self, db_session: AsyncSession):
        assert await CreditService.has_xp(db_session, 9999, amount=1) is False

    @pytest.mark.asyncio
    async def test_debit_success(self, db_session: AsyncSession, test_user: User):
        result = await CreditService.debit(db_session, test_user.id, amount=4)

        assert result is True
        assert await CreditService.get_balance(db_session, test_user.id) == 6

    @pytest.mark.asyncio
    async def test_debit_insufficient_leaves_balance(self, db_session: AsyncSession, test_user: User):
        result = await CreditService.debit(db_session, test_user.id, amount=11)

        assert result is False
        assert await CreditService.get_balance(db_session, test_user.id) == 10

    @pytest.mark.asyncio
    async def test_debit_negative_amount(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValueError, match="Cannot debit negative amount"):
            await CreditService.debit(db_session, test_user.id, amount=-1)

    @pytest.mark.asyncio
    async def test_credit_success(self, db_session: AsyncSession, test_user: User):
        await CreditService.credit(db_session, test_user.id, amount=5)
        assert await CreditService.get_balance(db_session, test_user.id) == 15

    @pytest.mark.asyncio
    async def test_credit_rejects_non_positive(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValueError, match="Credit amount must be positive"):
            await CreditService.credit(db_session, test_user.id, amount=0)

    @pytest.mark.asyncio
    async def test_debit_or_raise_carries_balance(self, db_session: AsyncSession, test_user_no_xp: User):
        with pytest.raises(InsufficientXPError) as exc_info:
            await CreditService.debit_or_raise(db_session, test_user_no_xp.id, 3)

        assert exc_info.value.to_detail() == {"error": "Insufficient XP", "required": 3, "current": 0}

    @pytest.mark.asyncio
    async def test_get_balance_user_not_found(self, db_session: AsyncSession):
        assert await CreditService.get_balance(db_session, 9999) == 0


class TestGenerationService:

    @pytest.mark.asyncio
    async def test_resolve_model_falls_back_from_inactive(self, db_session: AsyncSession, test_user: User):
        db_session.add(AIModel(model_id="retired", model_name="Retired", xp_cost=1, is_active=False))
        await db_session.commit()

        model = await GenerationService.resolve_model(db_session, test_user.id, "retired")

        assert model.model_id == settings.default_model_id

    @pytest.mark.asyncio
    async def test_reserve_debits_and_inserts_pending(self, db_session: AsyncSession, test_user: User):
        model = await GenerationService.get_default_model(db_session)

        generation = await GenerationService.reserve(
            db_session,
            user_id=test_user.id,
            kind=GenerationKind.REFINE,
            xp_cost=3,
            prompt="p",
            model=model,
        )

        assert generation.status == GenerationStatus.PENDING
        assert await CreditService.get_balance(db_session, test_user.id) == 7

    @pytest.mark.asyncio
    async def test_reserve_insufficient_writes_nothing(self, db_session: AsyncSession, test_user_no_xp: User):
        user_id = test_user_no_xp.id
        model = await GenerationService.get_default_model(db_session)

        with pytest.raises(InsufficientXPError):
            await GenerationService.reserve(
                db_session,
                user_id=user_id,
                kind=GenerationKind.TEMPLATE,
                xp_cost=2,
                prompt="p",
                model=model,
            )

        result = await db_session.execute(select(Generation.id).where(Generation.user_id == user_id))
        assert result.first() is None

    @pytest.mark.asyncio
    async def test_run_stores_images_on_success(
        self, db_session: AsyncSession, test_user: User, fake_provider, media_root
    ):
        model = await GenerationService.get_default_model(db_session)

        generation = await GenerationService.run(
            db_session,
            user_id=test_user.id,
            kind=GenerationKind.REFINE,
            image_bytes=PNG_BYTES,
            mime_type="image/png",
            prompt="p",
            xp_cost=3,
            model=model,
        )

        assert generation.status == GenerationStatus.COMPLETED
        assert generation.original_image_url.startswith("/media/uploads/")
        assert (media_root / generation.original_image_url[len("/media/"):]).read_bytes() == PNG_BYTES

    @pytest.mark.asyncio
    async def test_hairstyle_unknown_id_charges_nothing(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValueError, match="Invalid hairstyle ID"):
            await GenerationService.try_hairstyle(db_session, test_user.id, 42, PNG_BYTES, "image/png")

        assert await CreditService.get_balance(db_session, test_user.id) == 10

    @pytest.mark.asyncio
    async def test_reserve_concurrent_duplicate_rolls_back_debit(self, db_session: AsyncSession, test_user: User):
        user_id = test_user.id
        model = await GenerationService.get_default_model(db_session)
        db_session.add(Generation(
            user_id=user_id,
            kind=GenerationKind.TEMPLATE,
            status=GenerationStatus.COMPLETED,
            xp_cost=2,
            idempotency_key="retry-1",
        ))
        await db_session.commit()

        real_lookup = GenerationService.get_by_idempotency_key
        lookups = []

        async def lookup_racing_request(db, uid, key):
            # The other request commits between our existence check and insert
            lookups.append(key)
            if len(lookups) == 1:
                return None
            return await real_lookup(db, uid, key)

        with patch.object(GenerationService, "get_by_idempotency_key", new=lookup_racing_request):
            with pytest.raises(DuplicateGenerationError) as exc_info:
                await GenerationService.reserve(
                    db_session,
                    user_id=user_id,
                    kind=GenerationKind.TEMPLATE,
                    xp_cost=2,
                    prompt="p",
                    model=model,
                    idempotency_key="retry-1",
                )

        assert exc_info.value.generation.idempotency_key == "retry-1"
        assert await CreditService.get_balance(db_session, user_id) == 10
        count = await db_session.execute(select(func.count(Generation.id)).where(Generation.user_id == user_id))
        assert count.scalar() == 1

    @pytest.mark.asyncio
    async def test_storage_failure_refunds(self, db_session: AsyncSession, test_user: User, fake_provider):
        user_id = test_user.id
        model = await GenerationService.get_default_model(db_session)
        store = MagicMock()
        store.save = AsyncMock(side_effect=OSError("disk full"))

        with patch("studio.services.generation_service.get_image_store", return_value=store):
            with pytest.raises(GenerationFailedError) as exc_info:
                await GenerationService.run(
                    db_session,
                    user_id=user_id,
                    kind=GenerationKind.REFINE,
                    image_bytes=PNG_BYTES,
                    mime_type="image/png",
                    prompt="p",
                    xp_cost=3,
                    model=model,
                )

        assert exc_info.value.refunded == 3
        assert exc_info.value.generation.status == GenerationStatus.FAILED
        assert "disk full" in exc_info.value.generation.error
        assert await CreditService.get_balance(db_session, user_id) == 10

    @pytest.mark.asyncio
    async def test_cancelled_call_refunds(self, db_session: AsyncSession, test_user: User, fake_provider):
        user_id = test_user.id
        model = await GenerationService.get_default_model(db_session)
        fake_provider.generate_image = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await GenerationService.run(
                db_session,
                user_id=user_id,
                kind=GenerationKind.TEMPLATE,
                image_bytes=PNG_BYTES,
                mime_type="image/png",
                prompt="p",
                xp_cost=2,
                model=model,
            )

        assert await CreditService.get_balance(db_session, user_id) == 10
        result = await db_session.execute(select(Generation.status).where(Generation.user_id == user_id))
        assert result.scalar_one() == GenerationStatus.FAILED

    @pytest.mark.asyncio
    async def test_fail_stale_pending_refunds_old_rows_only(self, db_session: AsyncSession, test_user: User):
        user_id = test_user.id
        stale = Generation(
            user_id=user_id,
            kind=GenerationKind.TEMPLATE,
            status=GenerationStatus.PENDING,
            xp_cost=2,
            created_at=datetime.utcnow() - timedelta(hours=1),
        )
        fresh = Generation(
            user_id=user_id,
            kind=GenerationKind.HAIRSTYLE,
            status=GenerationStatus.PENDING,
            xp_cost=3,
        )
        db_session.add_all([stale, fresh])
        await db_session.commit()
        stale_id, fresh_id = stale.id, fresh.id

        assert await GenerationService.fail_stale_pending(db_session, older_than_minutes=15) == 1
        assert await GenerationService.fail_stale_pending(db_session, older_than_minutes=15) == 0

        assert await CreditService.get_balance(db_session, user_id) == 12
        statuses = dict((await db_session.execute(select(Generation.id, Generation.status))).all())
        assert statuses[stale_id] == GenerationStatus.FAILED
        assert statuses[fresh_id] == GenerationStatus.PENDING

    @pytest.mark.asyncio
    async def test_settle_after_sweep_does_not_complete(
        self, db_session: AsyncSession, test_user: User, fake_provider
    ):
        user_id = test_user.id
        model = await GenerationService.get_default_model(db_session)

        async def slow_generate(*args, **kwargs):
            # The sweep gives up on the generation while the provider is still working
            await GenerationService.fail_stale_pending(db_session, older_than_minutes=-1)
            return b"late"

        fake_provider.generate_image = slow_generate

        with pytest.raises(GenerationFailedError, match="Generation timed out"):
            await GenerationService.run(
                db_session,
                user_id=user_id,
                kind=GenerationKind.TEMPLATE,
                image_bytes=PNG_BYTES,
                mime_type="image/png",
                prompt="p",
                xp_cost=2,
                model=model,
            )

        assert await CreditService.get_balance(db_session, user_id) == 10
        result = await db_session.execute(select(Generation.status).where(Generation.user_id == user_id))
        assert result.scalar_one() == GenerationStatus.FAILED

    @pytest.mark.asyncio
    async def test_outfit_from_template_sends_garment_first(
        self, db_session: AsyncSession, test_user: User, fake_provider
    ):
        garment_url = await get_image_store().save(GARMENT_BYTES, "image/jpeg", "templates")
        outfit = OutfitTemplate(
            name="Linen Suit",
            description="Summer suit",
            outfit_image_url=garment_url,
            ai_prompt="Dress the person in the linen suit",
        )
        db_session.add(outfit)
        await db_session.commit()

        generation = await GenerationService.try_outfit(
            db_session, test_user.id, PNG_BYTES, "image/png", outfit_template_id=outfit.id
        )

        assert generation.kind == GenerationKind.OUTFIT
        assert generation.template_id is None
        assert generation.template_title == "Linen Suit"
        assert generation.xp_cost == settings.outfit_cost
        assert fake_provider.calls == ["Dress the person in the linen suit"]
        assert fake_provider.reference_images == [[(GARMENT_BYTES, "image/jpeg")]]

    @pytest.mark.asyncio
    async def test_outfit_requires_garment(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(ValueError, match="Outfit image or outfit template is required"):
            await GenerationService.try_outfit(db_session, test_user.id, PNG_BYTES, "image/png")

        with pytest.raises(ValueError, match="Outfit template not found"):
            await GenerationService.try_outfit(
                db_session, test_user.id, PNG_BYTES, "image/png", outfit_template_id=999
            )

        assert await CreditService.get_balance(db_session, test_user.id) == 10


class TestPromptViewService:

    @pytest.mark.asyncio
    async def test_unlock_once(self, db_session: AsyncSession, test_user: User, test_template: Template):
        first = await PromptViewService.unlock_template_prompt(db_session, test_user.id, test_template.id)
        second = await PromptViewService.unlock_template_prompt(db_session, test_user.id, test_template.id)

        assert first.xp_charged == 1
        assert second.xp_charged == 0
        assert second.new_xp == 9
        assert await PromptViewService.has_viewed(db_session, test_user.id, test_template.id)

    @pytest.mark.asyncio
    async def test_unlock_concurrent_duplicate_rolls_back_debit(
        self, db_session: AsyncSession, test_user: User, test_template: Template
    ):
        user_id, template_id = test_user.id, test_template.id
        # The other request's view row is already committed when ours checks
        db_session.add(TemplatePromptView(user_id=user_id, template_id=template_id, xp_cost=1))
        await db_session.commit()

        with patch.object(PromptViewService, "has_viewed", new=AsyncMock(return_value=False)):
            unlock = await PromptViewService.unlock_template_prompt(db_session, user_id, template_id)

        assert unlock.xp_charged == 0
        assert unlock.prompt == "Turn the subject into a cyberpunk character"
        assert unlock.new_xp == 10
        assert await CreditService.get_balance(db_session, user_id) == 10

    @pytest.mark.asyncio
    async def test_reveal_other_users_generation(
        self, db_session: AsyncSession, test_user: User, admin_user: User
    ):
        generation = Generation(
            user_id=admin_user.id,
            kind=GenerationKind.TEMPLATE,
            status=GenerationStatus.COMPLETED,
            prompt_used="hidden",
        )
        db_session.add(generation)
        await db_session.commit()

        with pytest.raises(PermissionError):
            await PromptViewService.reveal_generation_prompt(db_session, test_user.id, generation.id)


class TestTemplateService:

    @pytest.mark.asyncio
    async def test_get_by_slug_from_punctuated_title(self, db_session: AsyncSession, test_template: Template):
        template = await TemplateService.get_by_slug(db_session, "cyberpunk-portrait")
        assert template.id == test_template.id

        assert await TemplateService.get_by_slug(db_session, "CYBERPUNK  Portrait!!") is not None
        assert await TemplateService.get_by_slug(db_session, "cyberpunk") is None

    @pytest.mark.asyncio
    async def test_get_by_slug_ignores_inactive(self, db_session: AsyncSession, test_template: Template):
        test_template.is_active = False
        await db_session.commit()

        assert await TemplateService.get_by_slug(db_session, "cyberpunk-portrait") is None

    @pytest.mark.asyncio
    async def test_create_requires_fields(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="Title, description, and image URL are required"):
            await TemplateService.create(db_session, {"title": "x", "description": "  "})

    @pytest.mark.asyncio
    async def test_update_ignores_unknown_fields(self, db_session: AsyncSession, test_template: Template):
        template = await TemplateService.update(db_session, test_template.id, {"id": 500, "display_order": 7})

        assert template.id == test_template.id
        assert template.display_order == 7

    @pytest.mark.asyncio
    async def test_update_rejects_null_for_required_flags(self, db_session: AsyncSession, test_template: Template):
        template_id = test_template.id

        for field in ("is_active", "coming_soon", "display_order"):
            with pytest.raises(ValueError, match=f"{field} cannot be null"):
                await TemplateService.update(db_session, template_id, {field: None})

        template = await TemplateService.get(db_session, template_id)
        assert template.is_active is True
        assert template.display_order == 1

        # Session is still usable after the rejected updates
        template = await TemplateService.update(db_session, template_id, {"ai_prompt": None})
        assert template.ai_prompt is None


class TestOutfitService:

    @pytest.mark.asyncio
    async def test_create_defaults(self, db_session: AsyncSession):
        outfit = await OutfitService.create(db_session, {
            "name": "Red Dress",
            "description": "Evening dress",
            "ai_prompt": "  ",
            "display_order": None,
        })

        assert outfit.category == "change-outfit"
        assert outfit.outfit_image_url == ""
        assert outfit.ai_prompt is None
        assert outfit.display_order == 0
        assert outfit.is_active is True

    @pytest.mark.asyncio
    async def test_create_requires_name_and_description(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="Name and description are required"):
            await OutfitService.create(db_session, {"name": "Red Dress"})

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db_session: AsyncSession):
        outfit = await OutfitService.create(db_session, {"name": "Coat", "description": "Wool coat"})
        outfit_id = outfit.id

        updated = await OutfitService.update(db_session, outfit_id, {"is_active": False, "category": "winter"})
        assert updated.is_active is False
        assert updated.category == "winter"
        assert await OutfitService.get_active(db_session, outfit_id) is None

        with pytest.raises(ValueError, match="is_active cannot be null"):
            await OutfitService.update(db_session, outfit_id, {"is_active": None})

        await OutfitService.delete(db_session, outfit_id)
        assert await OutfitService.get(db_session, outfit_id) is None

        with pytest.raises(ValueError, match="Outfit template not found"):
            await OutfitService.delete(db_session, outfit_id)


class TestUserService:

    @pytest.mark.asyncio
    async def test_signup_hashes_password(self, db_session: AsyncSession):
        user = await UserService.signup(db_session, "alice", "Alice@Example.com", "password123")

        assert user.password_hash != "password123"
        assert user.password_hash.startswith("$2")
        assert user.xp == 250
        assert user.email_verified is False

    @pytest.mark.asyncio
    async def test_bcrypt_runs_in_worker_thread(self, db_session: AsyncSession):
        real_to_thread = asyncio.to_thread
        offloaded = []

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args, **kwargs)

        with patch("studio.services.user_service.asyncio.to_thread", new=recording_to_thread):
            await UserService.signup(db_session, "bob", "bob@example.com", "password123")
            with pytest.raises(AuthError):
                await UserService.authenticate(db_session, "bob@example.com", "password123")

        assert offloaded == ["hash_password", "verify_password"]

    @pytest.mark.asyncio
    async def test_verify_email_outcomes(self, db_session: AsyncSession):
        user = User(username="v", email="v@example.com", verification_token="abc")
        db_session.add(user)
        await db_session.commit()

        assert await UserService.verify_email(db_session, "abc") == "success"
        assert await UserService.verify_email(db_session, "abc") == "invalid"
        assert await UserService.verify_email(db_session, "") == "invalid"

    @pytest.mark.asyncio
    async def test_authenticate_checks_password_before_verification(self, db_session: AsyncSession):
        db_session.add(User(
            username="u",
            email="u@example.com",
            password_hash=hash_password("password123"),
            email_verified=False,
        ))
        await db_session.commit()

        with pytest.raises(AuthError) as exc_info:
            await UserService.authenticate(db_session, "u@example.com", "bad-password")
        assert exc_info.value.status_code == 401

        with pytest.raises(AuthError) as exc_info:
            await UserService.authenticate(db_session, "u@example.com", "password123")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_google_user_refreshes_picture(self, db_session: AsyncSession, test_user: User):
        claims = {"email": "tester@example.com", "picture": "https://lh3.example.com/new.png"}

        user = await UserService.get_or_create_google_user(db_session, claims)

        assert user.id == test_user.id
        assert user.profile_picture == "https://lh3.example.com/new.png"

    @pytest.mark.asyncio
    async def test_history_deduplicates_uploads(self, db_session: AsyncSession, test_user: User):
        for i in range(3):
            db_session.add(Generation(
                user_id=test_user.id,
                kind=GenerationKind.TEMPLATE,
                status=GenerationStatus.COMPLETED,
                original_image_url="/media/uploads/same.png",
                generated_image_url=f"/media/generated/{i}.png",
            ))
        db_session.add(Generation(
            user_id=test_user.id,
            kind=GenerationKind.TEMPLATE,
            status=GenerationStatus.FAILED,
            original_image_url="/media/uploads/failed.png",
        ))
        await db_session.commit()

        history = await UserService.get_history(db_session, test_user.id)

        assert history["uploads"] == ["/media/uploads/same.png"]
        assert len(history["generations"]) == 3


class TestStripeService:

    def test_xp_from_metadata_or_numeric_name(self):
        assert _xp_for_product(SimpleNamespace(metadata={"xp": "500"}, name="Big pack")) == 500
        assert _xp_for_product(SimpleNamespace(metadata={}, name=" 100 ")) == 100
        assert _xp_for_product(SimpleNamespace(metadata={}, name="Gift card")) is None
        assert _xp_for_product(SimpleNamespace(metadata={"xp": "0"}, name="0")) is None

    @pytest.mark.asyncio
    async def test_mark_completed_is_idempotent(self, db_session: AsyncSession, test_user: User):
        db_session.add(Payment(
            user_id=test_user.id,
            stripe_payment_intent_id="pi_1",
            amount_cents=100,
            xp_amount=10,
            status=PaymentStatus.PENDING,
        ))
        await db_session.commit()

        first = await StripeService.mark_payment_completed_by_intent(db_session, "pi_1")
        await db_session.commit()
        second = await StripeService.mark_payment_completed_by_intent(db_session, "pi_1")

        assert first is not None
        assert first.status == PaymentStatus.COMPLETED
        assert second is None

    @pytest.mark.asyncio
    async def test_mark_failed_leaves_completed(self, db_session: AsyncSession, test_user: User):
        db_session.add(Payment(
            user_id=test_user.id,
            stripe_payment_intent_id="pi_2",
            amount_cents=100,
            xp_amount=10,
            status=PaymentStatus.COMPLETED,
        ))
        await db_session.commit()

        assert await StripeService.mark_payment_failed_by_intent(db_session, "pi_2") is None

    @pytest.mark.asyncio
    async def test_mark_completed_only_from_pending_or_failed(self, db_session: AsyncSession, test_user: User):
        for intent_id, payment_status in (("pi_refunded", PaymentStatus.REFUNDED), ("pi_retried", PaymentStatus.FAILED)):
            db_session.add(Payment(
                user_id=test_user.id,
                stripe_payment_intent_id=intent_id,
                amount_cents=100,
                xp_amount=10,
                status=payment_status,
            ))
        await db_session.commit()

        assert await StripeService.mark_payment_completed_by_intent(db_session, "pi_refunded") is None
        retried = await StripeService.mark_payment_completed_by_intent(db_session, "pi_retried")
        await db_session.commit()

        assert retried.status == PaymentStatus.COMPLETED
        result = await db_session.execute(
            select(Payment.status).where(Payment.stripe_payment_intent_id == "pi_refunded")
        )
        assert result.scalar_one() == PaymentStatus.REFUNDED

    def test_packages_empty_without_key(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key", None)
        assert StripeService.get_packages() == []


class TestSupportServices:

    def test_verification_email_links_back_to_api(self):
        subject, body = EmailService.verification_email("alice", "tok")

        assert "Verify" in subject
        assert "/api/auth/verify?token=tok" in body

    def test_send_requires_smtp(self, monkeypatch):
        monkeypatch.setattr(settings, "smtp_host", None)
        with pytest.raises(RuntimeError):
            EmailService.send("a@example.com", "s", "b")

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Invalid AI provider"):
            get_image_provider("midjourney", "v6")

    @pytest.mark.asyncio
    async def test_local_store_round_trip(self, tmp_path):
        store = LocalImageStore(str(tmp_path), "/media")

        url = await store.save(PNG_BYTES, "image/png", "uploads")

        assert await store.read(url) == (PNG_BYTES, "image/png")
        assert await store.read("/media/../outside.png") is None
        assert await store.read("https://elsewhere.example.com/x.png") is None
        assert await store.delete(url) is True
        assert await store.read(url) is None

    @pytest.mark.asyncio
    async def test_load_image_refuses_unlisted_hosts(self, monkeypatch):
        monkeypatch.setattr(settings, "image_fetch_allowed_hosts", [])
        monkeypatch.setattr(settings, "r2_public_url", None)

        for url in ("http://169.254.169.254/latest/meta-data", "https://internal.example/x.png", "file:///etc/passwd"):
            with pytest.raises(ValueError, match="Image URL not allowed"):
                await VisionService.load_image(url)

    @pytest.mark.asyncio
    async def test_load_image_caps_size(self, monkeypatch):
        monkeypatch.setattr(settings, "image_fetch_allowed_hosts", ["cdn.example.com"])
        monkeypatch.setattr(settings, "max_upload_bytes", 16)
        real_client = httpx.AsyncClient

        def cdn_client(**kwargs):
            def handler(request):
                if request.url.path == "/big.png":
                    return httpx.Response(200, content=b"\x00" * 17, headers={"content-type": "image/png"})
                return httpx.Response(200, content=b"\x00" * 8, headers={"content-type": "image/jpeg; q=1"})
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with patch("studio.services.vision_service.httpx.AsyncClient", side_effect=cdn_client):
            with pytest.raises(ValueError, match="Image too large"):
                await VisionService.load_image("https://cdn.example.com/big.png")
            data, mime_type = await VisionService.load_image("https://CDN.example.com/small.jpg")

        assert data == b"\x00" * 8
        assert mime_type == "image/jpeg"
