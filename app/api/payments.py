"""Payment capture and verification endpoints.

  POST /v1/payments/capture  {"coursesId": [...]}
      -> 200 {"success": true, "clientSecret": "..."}
  POST /v1/payments/verify   {"paymentIntentId": "...", "coursesId": [...]}
      -> 200 {"success": true,  "verified": true,  "message": "Payment Verified", ...}
      -> 200 {"success": false, "verified": false, "message": "Payment Failed", ...}

Errors from app.core.errors become ``{"success": false, "message": ...}``
with 400/404/500 via the handlers registered in app.main.  Body fields
are optional at the schema level so a missing field is reported by the
service as "Payment data not found" rather than a 422.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import get_checkout_service, require_user
from app.models.principal import Principal
from app.services.checkout_service import CheckoutService

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CapturePaymentIn(_CamelModel):
    courses_id: list[str] = Field(default_factory=list, alias="coursesId")


class CapturePaymentOut(_CamelModel):
    success: bool
    client_secret: str = Field(alias="clientSecret")


class VerifyPaymentIn(_CamelModel):
    payment_intent_id: str | None = Field(default=None, alias="paymentIntentId")
    courses_id: list[str] | None = Field(default=None, alias="coursesId")


class EnrollmentOut(_CamelModel):
    course_id: str = Field(alias="courseId")
    enrolled: bool
    reason: str | None = None
    email_queued: bool = Field(alias="emailQueued")


class VerifyPaymentOut(_CamelModel):
    success: bool
    verified: bool
    message: str
    already_processed: bool = Field(alias="alreadyProcessed")
    enrollments: list[EnrollmentOut] = Field(default_factory=list)


@router.post("/capture", response_model=CapturePaymentOut)
async def capture_payment(
    body: CapturePaymentIn,
    principal: Annotated[Principal, Depends(require_user)],
    checkout: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> CapturePaymentOut:
    intent = await checkout.create_payment_intent(principal.user_id, body.courses_id)
    return CapturePaymentOut(success=True, client_secret=intent.client_secret)


@router.post("/verify", response_model=VerifyPaymentOut)
async def verify_payment(
    body: VerifyPaymentIn,
    principal: Annotated[Principal, Depends(require_user)],
    checkout: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> VerifyPaymentOut:
    result = await checkout.verify_payment(
        principal.user_id, body.payment_intent_id, body.courses_id
    )
    return VerifyPaymentOut(
        success=result.verified,
        verified=result.verified,
        message=result.message,
        already_processed=result.already_processed,
        enrollments=[
            EnrollmentOut(
                course_id=r.course_id,
                enrolled=r.enrolled,
                reason=r.reason,
                email_queued=r.email_queued,
            )
            for r in result.enrollments
        ],
    )
