from django.db import models


class ChannelRole(models.TextChoices):
    MARKETER     = "Marketer",    "Marketer"
    ADMIN        = "Admin",       "Admin"
    SUPER_ADMIN  = "SuperAdmin",  "Super Admin"
    MASTER_ADMIN = "MasterAdmin", "Master Admin"
    DEALER       = "Dealer",      "Dealer"


# Roles that may hold stock (create pickups, receive transfers).
FIELD_ROLES = {ChannelRole.MARKETER, ChannelRole.ADMIN, ChannelRole.SUPER_ADMIN}
