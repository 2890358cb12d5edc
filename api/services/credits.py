from typing import Any

from pydantic import BaseModel, Field

from api.exceptions.auth import AuthenticationFailedError
from api.exceptions.credits import InsufficientCreditsError
from api.logger import get_logger
from api.models.credits import CreditBalance, CreditType, credit_property
from api.models.exam_session import ExamType
from api.services.hubspot import HubSpotClient
from api.settings import settings
from api.utils.ids import canonical_id


logger = get_logger(__name__)


class CreditBreakdown(BaseModel):
    specific_credits: int = Field(description="Credits usable only for the requested exam type")
    shared_credits: int = Field(description="Shared credits usable for the requested exam type")


class Eligibility(BaseModel):
    eligible: bool = Field(description="Whether the student can book an exam of this type")
    available_credits: int = Field(description="Total number of credits usable for this exam type")
    breakdown: CreditBreakdown = Field(description="Usable credits per bucket")
    message: str = Field(description="Human readable summary")


class CreditConsumption(BaseModel):
    credit_type: CreditType = Field(description="The bucket that has been decremented")
    balance: CreditBalance = Field(description="The balance after the credit has been consumed")


class CreditLedgerService:
    """
    Read and mutate the credit balances stored on HubSpot contacts.

    HubSpot offers no atomic increment, so every mutation is a read-modify-write of a single property.
    Balances are always re-read right before they are written.
    """

    def __init__(self, client: HubSpotClient) -> None:
        self.client = client

    async def get_balance(self, contact_id: Any) -> CreditBalance:
        contact_id = canonical_id(contact_id)
        obj = await self.client.get_object(settings.contacts_object, contact_id, CreditBalance.PROPERTIES)
        if not obj:
            raise AuthenticationFailedError
        return CreditBalance.from_hubspot(obj)

    async def check_eligibility(self, contact_id: Any, exam_type: ExamType) -> Eligibility:
        balance = await self.get_balance(contact_id)
        return eligibility(balance, exam_type)

    async def consume(self, contact_id: Any, exam_type: ExamType) -> CreditConsumption:
        """Consume one credit, preferring the exam specific bucket over shared credits."""

        balance = await self.get_balance(contact_id)
        if balance.specific_for(exam_type) > 0:
            credit_type = CreditType.SPECIFIC
        elif balance.shared_for(exam_type) > 0:
            credit_type = CreditType.SHARED
        else:
            raise InsufficientCreditsError(0)

        balance = await self._apply(balance, credit_type, exam_type, -1)
        logger.info(f"Consumed {credit_type.value} credit of contact {balance.contact_id} for {exam_type.value}")
        return CreditConsumption(credit_type=credit_type, balance=balance)

    async def restore(self, contact_id: Any, credit_type: CreditType, exam_type: ExamType) -> CreditBalance:
        balance = await self._apply(await self.get_balance(contact_id), credit_type, exam_type, 1)
        logger.info(f"Restored {credit_type.value} credit of contact {balance.contact_id} for {exam_type.value}")
        return balance

    async def deduct(self, contact_id: Any, credit_type: CreditType, exam_type: ExamType) -> CreditBalance:
        """Take back a credit from one specific bucket, e.g. to revert a restore."""

        balance = await self.get_balance(contact_id)
        if balance.get(credit_type, exam_type) <= 0:
            raise InsufficientCreditsError(0)
        return await self._apply(balance, credit_type, exam_type, -1)

    async def _apply(
        self, balance: CreditBalance, credit_type: CreditType, exam_type: ExamType, delta: int
    ) -> CreditBalance:
        value = max(0, balance.get(credit_type, exam_type) + delta)
        await self.client.update_object(
            settings.contacts_object, balance.contact_id, {credit_property(credit_type, exam_type): str(value)}
        )
        return balance.with_value(credit_type, exam_type, value)


def eligibility(balance: CreditBalance, exam_type: ExamType) -> Eligibility:
    available = balance.available_for(exam_type)
    if available > 0:
        message = f"You have {available} credit(s) available for {exam_type.value} exams"
    else:
        message = f"Insufficient credits. You have 0 credits available for {exam_type.value} exams"

    return Eligibility(
        eligible=available > 0,
        available_credits=available,
        breakdown=CreditBreakdown(
            specific_credits=balance.specific_for(exam_type), shared_credits=balance.shared_for(exam_type)
        ),
        message=message,
    )
