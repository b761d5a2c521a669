"""Hardware-ID router: fingerprint derivation, binding and verification."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from keygate.presentation.api.dependencies import (
    AuthzService,
    DBSession,
    HwidBinderDep,
    KeyRedeemer,
    StaffUser,
    SubscriptionManager,
    rate_limit,
    unit_of_work,
)
from keygate.presentation.api.schemas import (
    BindRequest,
    FingerprintResponse,
    HardwareSignalsRequest,
    HwidBindingResponse,
    VerifyRequest,
    VerifyResponse,
)
from keygate_config import RouteClass
from keygate_identity import AuthorizationService, Permission, UserContext
from keygate_licensing import HardwareSignals, assess_fingerprint, derive_fingerprint

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/fingerprint",
    summary="Derive a fingerprint from hardware signals",
)
async def derive(
    request: HardwareSignalsRequest,
    binder: HwidBinderDep,
    _user: KeyRedeemer,
) -> FingerprintResponse:
    """
    Derive the fingerprint a client should present for binding.

    The same signals always yield the same fingerprint.
    """
    fingerprint = derive_fingerprint(
        HardwareSignals(**request.model_dump()),
        binder.policy,
    )
    assessment = assess_fingerprint(fingerprint)
    return FingerprintResponse(
        fingerprint=fingerprint,
        suspicious=assessment.suspicious,
        reason=assessment.reason,
    )


@router.post(
    "/bind",
    summary="Bind a fingerprint to a subscription",
    dependencies=[Depends(rate_limit(RouteClass.KEY_REDEMPTION))],
    responses={
        200: {"description": "Bound (or already bound to this fingerprint)"},
        400: {"description": "Malformed fingerprint"},
        403: {"description": "The subscription is bound for another account"},
        409: {"description": "Another device is locked to the subscription"},
        429: {"description": "Too many key redemptions from this address"},
    },
)
async def bind(
    request: BindRequest,
    binder: HwidBinderDep,
    authz: AuthzService,
    session: DBSession,
    user: KeyRedeemer,
) -> HwidBindingResponse:
    """
    Bind the fingerprint at key redemption.

    Each call is charged to the key redemption rate limit of the caller's
    address. Only the account that bound a subscription, or one that manages
    subscriptions, may bind it again.
    """
    async with unit_of_work(session):
        binding = await binder.bind(
            request.subscription_id,
            request.fingerprint,
            user_id=user.user_id,
            client_ip=user.client_ip,
            manage_any=_manages_subscriptions(authz, user),
        )
    return HwidBindingResponse.from_binding(binding)


@router.post(
    "/verify",
    summary="Check a fingerprint against the bound one",
    responses={
        200: {"description": "Outcome; a mismatch is not an error"},
        403: {"description": "The subscription is bound for another account"},
    },
)
async def verify(
    request: VerifyRequest,
    binder: HwidBinderDep,
    authz: AuthzService,
    session: DBSession,
    user: KeyRedeemer,
) -> VerifyResponse:
    async with unit_of_work(session):
        valid = await binder.verify(
            request.subscription_id,
            request.fingerprint,
            user_id=user.user_id,
            client_ip=user.client_ip,
            manage_any=_manages_subscriptions(authz, user),
        )
    return VerifyResponse(valid=valid)


@router.get("/mine", summary="List the caller's bindings")
async def list_my_bindings(
    binder: HwidBinderDep,
    user: KeyRedeemer,
) -> list[HwidBindingResponse]:
    """Bindings held by the current account, oldest first."""
    bindings = await binder.list_for_user(user.user_id)
    return [HwidBindingResponse.from_binding(b) for b in bindings]


@router.get(
    "/{subscription_id}",
    summary="Inspect a binding",
    responses={404: {"description": "Subscription has no binding"}},
)
async def get_binding(
    subscription_id: str,
    binder: HwidBinderDep,
    _staff: StaffUser,
) -> HwidBindingResponse:
    binding = await binder.get_binding(subscription_id)
    if binding is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription has no hardware binding",
        )
    return HwidBindingResponse.from_binding(binding)


@router.post(
    "/{subscription_id}/unlock",
    summary="Allow the next bind to replace the device",
    responses={404: {"description": "Subscription has no binding"}},
)
async def unlock_binding(
    subscription_id: str,
    binder: HwidBinderDep,
    session: DBSession,
    admin: SubscriptionManager,
) -> HwidBindingResponse:
    async with unit_of_work(session):
        binding = await binder.unlock(subscription_id, actor=admin.user_id)
    return HwidBindingResponse.from_binding(binding)


@router.delete(
    "/{subscription_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Release a binding",
    responses={404: {"description": "Subscription has no binding"}},
)
async def release_binding(
    subscription_id: str,
    binder: HwidBinderDep,
    session: DBSession,
    admin: SubscriptionManager,
) -> None:
    async with unit_of_work(session):
        await binder.release(subscription_id, actor=admin.user_id)
    logger.info("Binding of %s released by %s", subscription_id, admin.user_id)


def _manages_subscriptions(authz: AuthorizationService, user: UserContext) -> bool:
    return authz.has_permission(user.role, Permission.MANAGE_SUBSCRIPTIONS)
