# barberbook/services/provider_service.py
"""
Provider onboarding.

A provider either pays the one-time registration fee (verified with the
gateway, then completed straight to ACTIVE) or opens a recurring mandate
with a free trial and waits in PENDING_MANDATE until the gateway reports
the mandate as authenticated.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictException, ValidationException
from ..models.provider import Provider, SubscriptionState
from ..repositories.factory import RepositoryFactory
from ..schemas.provider import ProviderRegistration
from .base import BaseService
from .payment_gateway import PaymentGateway, SubscriptionMandate
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    provider: Provider
    mandate_reference: Optional[str] = None


class ProviderService(BaseService):
    """Registration and lookup of providers."""

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        registration_fee: Decimal,
        trial_days: int,
        subscription_service: Optional[SubscriptionService] = None,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.registration_fee = registration_fee
        self.trial_days = trial_days
        self.repository = RepositoryFactory.create_provider_repository(db)
        self.subscription_service = subscription_service or SubscriptionService(db, gateway)

    @BaseService.measure_operation("register_provider")
    def register_provider(self, request: ProviderRegistration) -> RegistrationResult:
        """
        Register a provider via fee payment or subscription mandate.

        Raises:
            ConflictException: If the email or mobile number is already registered
            ValidationException: If the registration payment does not verify
            PaymentGatewayException: If the gateway cannot open the mandate
        """
        if self.repository.find_by_contact(request.email, request.mobile_number):
            raise ConflictException(
                "A provider with this email or mobile number already exists",
                code="PROVIDER_ALREADY_REGISTERED",
            )

        if request.registration_payment_reference:
            return self._register_with_fee(request)
        return self._register_with_mandate(request)

    def _register_with_fee(self, request: ProviderRegistration) -> RegistrationResult:
        reference = request.registration_payment_reference
        payment = self.gateway.verify_payment(reference)
        if not payment.succeeded or payment.amount < self.registration_fee:
            raise ValidationException(
                "Registration payment could not be verified",
                code="PAYMENT_NOT_VERIFIED",
                details={"payment_reference": reference},
            )
        if self.repository.exists(registration_payment_id=reference):
            raise ConflictException(
                "This payment has already been used for a registration",
                code="PAYMENT_ALREADY_RECORDED",
            )

        with self.transaction():
            provider = self._create_provider(request, registration_payment_id=reference)
            self.subscription_service.complete_registration(
                provider, occurred_at=datetime.now(timezone.utc)
            )
        self.log_operation(
            "register_provider", provider_id=provider.id, flow="registration_fee"
        )
        return RegistrationResult(provider=provider)

    def _register_with_mandate(self, request: ProviderRegistration) -> RegistrationResult:
        mandate: SubscriptionMandate = self.gateway.create_subscription(
            provider_name=request.full_name,
            email=request.email,
            mobile_number=request.mobile_number,
            trial_days=self.trial_days,
        )
        with self.transaction():
            provider = self._create_provider(
                request,
                gateway_customer_id=mandate.customer_id,
                external_subscription_id=mandate.subscription_id,
                trial_ends_at=mandate.trial_ends_at,
            )
        self.log_operation(
            "register_provider",
            provider_id=provider.id,
            flow="mandate",
            subscription_id=mandate.subscription_id,
        )
        return RegistrationResult(provider=provider, mandate_reference=mandate.mandate_reference)

    def _create_provider(self, request: ProviderRegistration, **extra) -> Provider:
        return self.repository.create(
            full_name=request.full_name,
            email=request.email,
            mobile_number=request.mobile_number,
            shop_name=request.shop_name,
            shop_address=request.shop_address,
            is_available=True,
            subscription_status=SubscriptionState.PENDING_MANDATE.value,
            **extra,
        )
