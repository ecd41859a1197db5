"""Product access validation.

Thin controller: the caller's session is validated, the shared limiter is
consulted, and the decision itself is delegated to
:class:`~accessguard.domain.entitlements.EntitlementResolver`.
"""

from fastapi import APIRouter, Depends, status

from accessguard.adapters.api.v1.schemas import ValidateLicenseRequest, ValidateLicenseResponse
from accessguard.core.dependencies.auth import CurrentSession
from accessguard.core.dependencies.entitlements import Resolver
from accessguard.core.dependencies.rate_limit import rate_limited
from accessguard.core.exceptions import NotEntitledError, ValidationError
from accessguard.domain.value_objects.entitlement import ProductRef

router = APIRouter()


@router.post(
    "/validate",
    response_model=ValidateLicenseResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether the caller may use a product",
    responses={
        400: {"description": "Neither product_id nor product_slug given"},
        401: {"description": "Invalid credential or revoked session"},
        403: {"description": "No entitlement for this product"},
        404: {"description": "Unknown product slug"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def validate_license(
    payload: ValidateLicenseRequest,
    current: CurrentSession,
    resolver: Resolver,
    _rate_limit=Depends(rate_limited("validate-license")),
) -> ValidateLicenseResponse:
    try:
        product_ref = ProductRef(product_id=payload.product_id, slug=payload.product_slug)
    except ValueError as exc:
        raise ValidationError(str(exc), code="missing_product") from None

    decision = await resolver.resolve(current.user_id, product_ref)
    if not decision.allowed:
        raise NotEntitledError(reason=decision.reason, product_id=decision.product_id)

    return ValidateLicenseResponse(
        allowed=True,
        reason=decision.reason,
        user_id=current.user_id,
        product_id=decision.product_id or product_ref.product_id,
    )
