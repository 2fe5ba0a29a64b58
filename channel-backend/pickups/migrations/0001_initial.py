from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Pickup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("reserved_count", models.PositiveIntegerField(default=0, help_text="Units originally reserved for this pickup")),
                ("pickup_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("deadline", models.DateTimeField(db_index=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("pending_order", "Pending Order"), ("return_pending", "Pending Return"), ("returned", "Returned"), ("transfer_pending", "Transfer Pending"), ("transfer_approved", "Transfer Approved"), ("transfer_rejected", "Transfer Rejected"), ("sold", "Sold"), ("expired", "Expired")], db_index=True, default="pending", max_length=20)),
                ("transfer_reason", models.TextField(blank=True)),
                ("return_requested_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField(blank=True, help_text="Set when the sweeper forced a return", null=True)),
                ("transfer_requested_at", models.DateTimeField(blank=True, null=True)),
                ("transfer_reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("sold_at", models.DateTimeField(blank=True, null=True)),
                ("marketer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pickups", to="accounts.channeluser")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pickups", to="catalog.product")),
                ("transfer_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="incoming_transfers", to="accounts.channeluser")),
                ("previous_marketer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="transferred_pickups", to="accounts.channeluser")),
                ("transferred_from", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="successors", to="pickups.pickup")),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="accounts.channeluser")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "deadline"], name="pickup_status_deadline_idx"),
                    models.Index(fields=["marketer", "status"], name="pickup_marketer_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ("pending", "pending_order", "return_pending", "transfer_pending"))),
                        fields=("marketer",),
                        name="uniq_active_pickup_per_marketer",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AdditionalPickupRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")], db_index=True, default="pending", max_length=10)),
                ("note", models.TextField(blank=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("next_request_allowed_at", models.DateTimeField(blank=True, null=True)),
                ("marketer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="additional_pickup_requests", to="accounts.channeluser")),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="accounts.channeluser")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "approved"])),
                        fields=("marketer",),
                        name="uniq_open_additional_request_per_marketer",
                    ),
                ],
            },
        ),
    ]
