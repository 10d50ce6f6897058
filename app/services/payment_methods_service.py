"""
Payment methods service.

Saved cards and UPI ids. Card tokens are encrypted at rest; every change
is written to the activity log.
"""

import re
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PaymentMethodType
from app.models.payment import PaymentMethod
from app.repositories.activity_log_repository import ActivityLogRepository
from app.repositories.payment_repository import PaymentMethodRepository
from app.services.base_service import BaseService, log_operation
from app.services.payment_gateway import RazorpayGateway, get_payment_gateway
from app.utils.encryption import EncryptionService, get_encryption_service
from app.utils.exceptions import NotFoundError, PaymentGatewayError, ValidationError
from app.utils.security import mask_upi
from app.validators import validate_card_last_four, validate_name, validate_upi_id


CARD_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")

UPI_VERIFIED_MESSAGE = "UPI ID verified successfully"
UPI_UNVERIFIED_MESSAGE = (
    "UPI ID added but could not be verified. You can still use it for payments."
)

ACTIVITY_CATEGORY = "payment"


class PaymentMethodsService(BaseService):
    """Saved payment methods of a profile."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: RazorpayGateway | None = None,
        encryption: EncryptionService | None = None,
    ) -> None:
        super().__init__(session)
        self.method_repo = PaymentMethodRepository(session)
        self.activity_repo = ActivityLogRepository(session)
        self._gateway = gateway
        self._encryption = encryption

    @property
    def gateway(self) -> RazorpayGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    @property
    def encryption(self) -> EncryptionService:
        if self._encryption is None:
            self._encryption = get_encryption_service()
        return self._encryption

    async def list_methods(self, profile_id: uuid.UUID) -> list[PaymentMethod]:
        """Default first, then newest."""
        return await self.method_repo.find_for_profile(profile_id)

    async def _is_first_method(self, profile_id: uuid.UUID) -> bool:
        return not await self.method_repo.exists(profile_id=profile_id)

    @log_operation
    async def add_card(
        self,
        profile_id: uuid.UUID,
        card_last4: str,
        cardholder_name: str,
        card_brand: str | None = None,
        card_type: str | None = None,
        card_token: str | None = None,
        card_expiry: str | None = None,
        bank_name: str | None = None,
    ) -> PaymentMethod:
        """
        Save a tokenized card.

        Only the gateway token (encrypted) and display details are stored.
        The first saved method becomes the default.
        """
        valid, last4, error = validate_card_last_four(card_last4)
        if not valid:
            raise ValidationError(error)

        valid, name, error = validate_name(cardholder_name, field="Cardholder name")
        if not valid:
            raise ValidationError(error)

        if card_expiry and not CARD_EXPIRY_PATTERN.match(card_expiry):
            raise ValidationError("Card expiry must be in MM/YY format")

        network = (card_brand or "unknown").strip().lower()
        is_first = await self._is_first_method(profile_id)

        method = await self.method_repo.create(
            profile_id=profile_id,
            method_type=PaymentMethodType.CARD.value,
            display_name=name,
            card_last_four=last4,
            card_network=network,
            card_type=(card_type or "debit").strip().lower(),
            card_expiry=card_expiry,
            card_token_encrypted=(
                self.encryption.encrypt(card_token.strip()) if card_token else None
            ),
            bank_name=bank_name.strip() if bank_name else None,
            is_default=is_first,
            is_verified=True,
        )

        await self.activity_repo.log(
            profile_id,
            "payment_method_added",
            ACTIVITY_CATEGORY,
            f"Added card ending in {last4}",
            {
                "method_id": str(method.id),
                "method_type": PaymentMethodType.CARD.value,
                "card_network": network,
            },
        )
        return method

    @log_operation
    async def add_upi(
        self, profile_id: uuid.UUID, upi_id: str
    ) -> tuple[PaymentMethod, str]:
        """
        Save a UPI id after checking it with the gateway.

        A gateway failure does not block saving: the id is stored
        unverified and will be validated on the first real payment.

        Returns:
            Tuple of (method, verification_message)
        """
        valid, normalized, error = validate_upi_id(upi_id)
        if not valid:
            raise ValidationError(error)

        if await self.method_repo.get_by_upi(profile_id, normalized):
            raise ValidationError("This UPI ID is already saved")

        try:
            is_verified = await self.gateway.validate_vpa(normalized)
        except PaymentGatewayError as e:
            self.logger.warning(
                f"UPI verification skipped for {mask_upi(normalized)}: {e.message}"
            )
            is_verified = False

        is_first = await self._is_first_method(profile_id)
        method = await self.method_repo.create(
            profile_id=profile_id,
            method_type=PaymentMethodType.UPI.value,
            display_name=normalized,
            upi_id=normalized,
            is_default=is_first,
            is_verified=is_verified,
        )

        await self.activity_repo.log(
            profile_id,
            "payment_method_added",
            ACTIVITY_CATEGORY,
            f"Added UPI ID {normalized}",
            {
                "method_id": str(method.id),
                "method_type": PaymentMethodType.UPI.value,
                "is_verified": is_verified,
            },
        )
        message = UPI_VERIFIED_MESSAGE if is_verified else UPI_UNVERIFIED_MESSAGE
        return method, message

    async def _get_owned(
        self, profile_id: uuid.UUID, method_id: uuid.UUID
    ) -> PaymentMethod:
        method = await self.method_repo.get_owned(method_id, profile_id)
        if method is None:
            raise NotFoundError("Payment method not found")
        return method

    @log_operation
    async def set_default(
        self, profile_id: uuid.UUID, method_id: uuid.UUID
    ) -> PaymentMethod:
        method = await self._get_owned(profile_id, method_id)

        await self.method_repo.clear_default(profile_id, except_id=method.id)
        method.is_default = True
        await self.session.flush()

        await self.activity_repo.log(
            profile_id,
            "payment_method_default_changed",
            ACTIVITY_CATEGORY,
            f"Set {method.method_type} as default payment method",
            {"method_id": str(method.id), "method_type": method.method_type},
        )
        return method

    @log_operation
    async def delete_method(
        self, profile_id: uuid.UUID, method_id: uuid.UUID
    ) -> None:
        """
        Remove a saved method.

        Raises:
            ValidationError: Deleting the default while others exist
        """
        method = await self._get_owned(profile_id, method_id)

        if method.is_default:
            total = await self.method_repo.count(profile_id=profile_id)
            if total > 1:
                raise ValidationError(
                    "Cannot delete default payment method. "
                    "Set another method as default first."
                )

        await self.method_repo.delete(method.id)

        await self.activity_repo.log(
            profile_id,
            "payment_method_deleted",
            ACTIVITY_CATEGORY,
            f"Removed {method.method_type}: {method.display_name}",
            {"method_id": str(method.id), "method_type": method.method_type},
        )
