"""
Payment service.

Gateway orders for projects and wallet top-ups, checkout verification,
wallet payments and refunds. Gateway calls go through retry-with-backoff
and order creation is deduplicated by idempotency key.
"""

import traceback
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import MAXIMUM_TOP_UP_AMOUNT, MINIMUM_TOP_UP_AMOUNT
from app.config.settings import settings
from app.models.enums import (
    PaymentProvider,
    PaymentPurpose,
    PaymentStatus,
    ProjectStatus,
    RetryOperation,
    TransactionType,
)
from app.models.payment import Payment
from app.models.project import Project
from app.repositories.payment_repository import PaymentRepository
from app.repositories.project_repository import ProjectRepository
from app.services.base_service import BaseService, log_operation
from app.services.notification import NotificationService
from app.services.payment_gateway import RazorpayGateway, get_payment_gateway
from app.services.payment_retry import (
    IdempotencyGuard,
    PaymentRetryService,
    RetryConfig,
    generate_idempotency_key,
    get_idempotency_guard,
    retry_with_backoff,
)
from app.services.project.transitions import apply_transition
from app.services.wallet_service import WalletService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    PaymentGatewayError,
    SecurityError,
    ValidationError,
)
from app.utils.formatters import to_paise
from app.utils.security import mask_sensitive
from app.validators import validate_amount


class PaymentService(BaseService):
    """Payments for projects and wallet top-ups."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: RazorpayGateway | None = None,
        idempotency_guard: IdempotencyGuard | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        super().__init__(session)
        self.gateway = gateway or get_payment_gateway()
        self.guard = idempotency_guard or get_idempotency_guard()
        self.retry_config = retry_config or RetryConfig.from_settings()
        self.payment_repo = PaymentRepository(session)
        self.project_repo = ProjectRepository(session)
        self.wallet_service = WalletService(session)
        self.notifications = NotificationService(session)

    async def _get_payable_project(
        self, project_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Project:
        project = await self.project_repo.get_for_update(project_id)
        if project is None or project.client_id != profile_id:
            raise NotFoundError("Project not found")
        if project.status != ProjectStatus.PAYMENT_PENDING.value:
            raise InvalidStateTransitionError(
                project.status, ProjectStatus.PAID.value
            )
        if not project.user_amount:
            raise ValidationError("Project has no accepted quote")
        return project

    async def _create_order(
        self,
        profile_id: uuid.UUID,
        amount: Decimal,
        purpose: PaymentPurpose,
        project_id: uuid.UUID | None = None,
    ) -> Payment:
        """
        Create (or reuse) a gateway order and its ``payments`` row.

        A repeated submit inside the idempotency window returns the
        existing payment instead of creating a second order.
        """
        key = generate_idempotency_key(
            str(profile_id),
            f"{purpose.value}_order",
            {
                "project_id": str(project_id) if project_id else None,
                "amount": str(amount),
            },
            window_seconds=settings.idempotency_window_seconds,
        )

        existing = await self.payment_repo.get_by_idempotency_key(key)
        if existing is not None:
            self.logger.info(f"Reusing payment {existing.id} for {key}")
            return existing

        notes = {"profile_id": str(profile_id), "purpose": purpose.value}
        if project_id:
            notes["project_id"] = str(project_id)

        async def create_order() -> dict:
            return await retry_with_backoff(
                lambda: self.gateway.create_order(
                    to_paise(amount), settings.payment_currency, key, notes
                ),
                self.retry_config,
                operation_name=f"create_order {key}",
            )

        order = await self.guard.run(key, create_order)

        # Joined in-flight requests share the order; only one row is stored
        payment, inserted = await self.payment_repo.create_for_order(
            profile_id=profile_id,
            project_id=project_id,
            purpose=purpose.value,
            provider=PaymentProvider.RAZORPAY.value,
            amount=amount,
            currency=settings.payment_currency,
            status=PaymentStatus.INITIATED.value,
            gateway_order_id=order["id"],
            idempotency_key=key,
        )
        if not inserted:
            self.logger.info(f"Reusing payment {payment.id} for {key}")
            return payment

        self.logger.info(
            f"Payment {payment.id} initiated, order {mask_sensitive(order['id'])}",
            extra={"purpose": purpose.value, "amount": str(amount)},
        )
        return payment

    @log_operation
    async def create_payment_order(
        self, profile_id: uuid.UUID, project_id: uuid.UUID
    ) -> Payment:
        """
        Start checkout for a project with an accepted quote.

        Raises:
            NotFoundError: Not the caller's project
            InvalidStateTransitionError: Project is not awaiting payment
            PaymentGatewayError: Gateway failed after retries
            DuplicateRequestError: Same order being created by another worker
        """
        project = await self._get_payable_project(project_id, profile_id)
        return await self._create_order(
            profile_id, project.user_amount, PaymentPurpose.PROJECT, project.id
        )

    @log_operation
    async def top_up_wallet(
        self, profile_id: uuid.UUID, amount: Decimal | str
    ) -> Payment:
        """Start checkout for a wallet top-up (credited on verification)."""
        valid, value, error = validate_amount(
            amount, MINIMUM_TOP_UP_AMOUNT, MAXIMUM_TOP_UP_AMOUNT
        )
        if not valid:
            raise ValidationError(error)
        return await self._create_order(
            profile_id, value, PaymentPurpose.WALLET_TOP_UP
        )

    @log_operation
    async def verify_payment(
        self,
        profile_id: uuid.UUID,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> Payment:
        """
        Confirm a checkout with the gateway signature.

        Success completes the payment, then marks the project paid or
        credits the wallet. Verifying an already completed payment again
        returns it unchanged.

        Raises:
            SecurityError: Signature does not match
        """
        payment = await self.payment_repo.get_by_order_id(order_id, for_update=True)
        if payment is None or payment.profile_id != profile_id:
            raise NotFoundError("Payment not found")

        if payment.status == PaymentStatus.COMPLETED.value:
            if payment.gateway_payment_id == payment_id:
                return payment
            raise InvalidStateTransitionError(
                payment.status, PaymentStatus.COMPLETED.value
            )
        if payment.status not in (
            PaymentStatus.INITIATED.value, PaymentStatus.PENDING.value
        ):
            raise InvalidStateTransitionError(
                payment.status, PaymentStatus.COMPLETED.value
            )

        if not self.gateway.verify_payment_signature(order_id, payment_id, signature):
            self.logger.warning(
                f"Invalid payment signature for order {mask_sensitive(order_id)}",
                extra={"profile_id": str(profile_id)},
            )
            raise SecurityError("Invalid payment signature")

        payment.status = PaymentStatus.COMPLETED.value
        payment.gateway_payment_id = payment_id
        payment.completed_at = utc_now()
        await self.session.flush()

        if payment.purpose == PaymentPurpose.WALLET_TOP_UP.value:
            await self.wallet_service.credit(
                profile_id,
                payment.amount,
                TransactionType.TOP_UP,
                description="Wallet top-up",
                reference_type="payment",
                reference_id=payment.id,
            )
            await self.notifications.notify_payment_received(
                profile_id, payment.amount
            )
            return payment

        project = await self.project_repo.get_for_update(payment.project_id)
        if project is None or project.status != ProjectStatus.PAYMENT_PENDING.value:
            # Cancelled while the client was at checkout
            self.logger.error(
                f"Payment {payment.id} captured for project no longer awaiting "
                "payment, refunding"
            )
            await self.refund_payment(payment, "Project no longer awaiting payment")
            return payment

        apply_transition(project, ProjectStatus.PAID)
        await self.notifications.notify_payment_received(
            profile_id, payment.amount, project
        )
        return payment

    @log_operation
    async def pay_from_wallet(
        self, profile_id: uuid.UUID, project_id: uuid.UUID
    ) -> Payment:
        """
        Pay for a project with the wallet balance.

        Raises:
            InsufficientFundsError: Available balance below the quote total
        """
        project = await self._get_payable_project(project_id, profile_id)

        await self.wallet_service.debit(
            profile_id,
            project.user_amount,
            TransactionType.PROJECT_PAYMENT,
            description=f"Payment for {project.project_number}",
            reference_type="project",
            reference_id=project.id,
        )
        payment = await self.payment_repo.create(
            profile_id=profile_id,
            project_id=project.id,
            purpose=PaymentPurpose.PROJECT.value,
            provider=PaymentProvider.WALLET.value,
            amount=project.user_amount,
            currency=settings.payment_currency,
            status=PaymentStatus.COMPLETED.value,
            completed_at=utc_now(),
        )
        apply_transition(project, ProjectStatus.PAID)
        await self.notifications.notify_payment_received(
            profile_id, payment.amount, project
        )
        return payment

    async def refund_project_payment(
        self, project: Project, reason: str
    ) -> Payment | None:
        """Refund the completed payment of a project, if there is one."""
        payment = await self.payment_repo.get_completed_for_project(project.id)
        if payment is None:
            return None
        await self.refund_payment(payment, reason)
        return payment

    async def refund_payment(self, payment: Payment, reason: str) -> bool:
        """
        Give the money back.

        Wallet payments are credited back at once. Gateway refunds are
        retried with backoff; if the gateway still fails the refund is
        persisted for the background retry job and the payment stays
        completed until it goes through.

        Returns:
            True if refunded now, False if scheduled for retry
        """
        if payment.provider == PaymentProvider.WALLET.value:
            await self.wallet_service.credit(
                payment.profile_id,
                payment.amount,
                TransactionType.REFUND,
                description=reason,
                reference_type="payment",
                reference_id=payment.id,
            )
            payment.status = PaymentStatus.REFUNDED.value
            await self.session.flush()
            return True

        amount_paise = to_paise(payment.amount)
        notes = {"reason": reason[:250]}
        try:
            await retry_with_backoff(
                lambda: self.gateway.create_refund(
                    payment.gateway_payment_id, amount_paise, notes
                ),
                self.retry_config,
                operation_name=f"create_refund {payment.id}",
            )
        except PaymentGatewayError as e:
            retry_service = PaymentRetryService(self.session)
            await retry_service.create_retry_record(
                profile_id=payment.profile_id,
                operation=RetryOperation.CREATE_REFUND,
                payload={
                    "gateway_payment_id": payment.gateway_payment_id,
                    "amount_paise": amount_paise,
                    "notes": notes,
                },
                amount=payment.amount,
                idempotency_key=f"refund_{payment.id}",
                error=e.message,
                payment_id=payment.id,
                error_stack=traceback.format_exc(),
            )
            payment.failure_reason = f"Refund pending retry: {e.message}"
            await self.session.flush()
            return False

        payment.status = PaymentStatus.REFUNDED.value
        await self.session.flush()
        return True

    async def get_payment(
        self, payment_id: uuid.UUID, profile_id: uuid.UUID
    ) -> Payment:
        payment = await self.payment_repo.get_by_id(payment_id)
        if payment is None or payment.profile_id != profile_id:
            raise NotFoundError("Payment not found")
        return payment

    async def list_payments(
        self, profile_id: uuid.UUID, limit: int = 50, offset: int = 0
    ) -> list[Payment]:
        return await self.payment_repo.find_for_profile(profile_id, limit, offset)
