# channel-backend/common/policy.py
"""
Who may do what.

Services receive an ``Actor`` and call ``require`` once at their entry point
instead of branching on role strings further down.
"""
from dataclasses import dataclass

from common.exceptions import AuthorizationDenied, NotOwner
from common.roles import ChannelRole


class Capability:
    CREATE_PICKUP = "create_pickup"
    PLACE_ORDER = "place_order"
    REQUEST_RETURN = "request_return"
    REQUEST_TRANSFER = "request_transfer"
    REQUEST_ADDITIONAL_PICKUP = "request_additional_pickup"
    CANCEL_ORDER = "cancel_order"
    CONFIRM_ORDER = "confirm_order"
    CONFIRM_RETURN = "confirm_return"
    REVIEW_TRANSFER = "review_transfer"
    REVIEW_ADDITIONAL_PICKUP = "review_additional_pickup"
    LOCK_ACCOUNT = "lock_account"
    VIEW_ALL_PICKUPS = "view_all_pickups"
    RECEIVE_STOCK = "receive_stock"


_FIELD = {
    Capability.CREATE_PICKUP,
    Capability.PLACE_ORDER,
    Capability.REQUEST_RETURN,
    Capability.REQUEST_TRANSFER,
    Capability.REQUEST_ADDITIONAL_PICKUP,
    Capability.CANCEL_ORDER,
}

ROLE_CAPABILITIES = {
    ChannelRole.MARKETER: _FIELD,
    ChannelRole.ADMIN: _FIELD,
    ChannelRole.SUPER_ADMIN: _FIELD,
    ChannelRole.MASTER_ADMIN: {
        Capability.CANCEL_ORDER,
        Capability.CONFIRM_ORDER,
        Capability.CONFIRM_RETURN,
        Capability.REVIEW_TRANSFER,
        Capability.REVIEW_ADDITIONAL_PICKUP,
        Capability.LOCK_ACCOUNT,
        Capability.VIEW_ALL_PICKUPS,
        Capability.RECEIVE_STOCK,
    },
    ChannelRole.DEALER: {Capability.RECEIVE_STOCK},
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation."""
    profile: object  # accounts.ChannelUser

    @property
    def id(self):
        return self.profile.pk

    @property
    def role(self):
        return self.profile.role

    @classmethod
    def for_user(cls, user):
        profile = getattr(user, "channel_profile", None) if user is not None else None
        if profile is None:
            raise AuthorizationDenied("No channel profile is linked to this account")
        return cls(profile=profile)

    def can(self, capability) -> bool:
        return capability in ROLE_CAPABILITIES.get(self.role, set())


def require(actor, capability):
    if not actor.can(capability):
        raise AuthorizationDenied(
            f"{actor.role} accounts are not allowed to {capability.replace('_', ' ')}",
            capability=capability,
        )


def require_owner(actor, marketer_id):
    if actor.id != marketer_id:
        raise NotOwner()
