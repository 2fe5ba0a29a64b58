from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("catalog", "0001_initial"),
        ("pickups", "0001_initial"),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryUnit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("imei", models.CharField(max_length=32, unique=True)),
                ("status", models.CharField(choices=[("available", "Available"), ("reserved", "Reserved"), ("sold", "Sold")], db_index=True, default="available", max_length=16)),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="units", to="orders.order")),
                ("pickup", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="units", to="pickups.pickup")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="units", to="catalog.product")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["product", "status"], name="inv_unit_product_status_idx"),
                    models.Index(fields=["pickup", "status"], name="inv_unit_pickup_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("RECEIPT", "Receipt"), ("RESERVE", "Reserve"), ("RELEASE", "Release"), ("SALE", "Sale"), ("TRANSFER_OUT", "Transfer Out"), ("TRANSFER_IN", "Transfer In")], db_index=True, max_length=16)),
                ("quantity", models.PositiveIntegerField(help_text="Number of units moved")),
                ("on_hand_delta", models.IntegerField(default=0)),
                ("balance_after", models.IntegerField(blank=True, null=True)),
                ("unit_ids", models.JSONField(blank=True, default=list)),
                ("note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="accounts.channeluser")),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="movements", to="orders.order")),
                ("pickup", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="pickups.pickup")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="catalog.product")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="inv_move_product_created_idx"),
                    models.Index(fields=["pickup", "kind"], name="inv_move_pickup_kind_idx"),
                ],
            },
        ),
    ]
