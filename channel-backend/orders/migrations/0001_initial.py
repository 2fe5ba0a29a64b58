from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("catalog", "0001_initial"),
        ("pickups", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("number_of_devices", models.PositiveIntegerField(default=1)),
                ("sold_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("customer_name", models.CharField(max_length=160)),
                ("customer_phone", models.CharField(max_length=32)),
                ("customer_address", models.TextField(blank=True)),
                ("bnpl_platform", models.CharField(blank=True, help_text="Buy-now-pay-later platform, if any", max_length=60)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("released_confirmed", "Released / Confirmed"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=20)),
                ("commission_paid", models.BooleanField(default=False)),
                ("sale_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.CharField(blank=True, max_length=200)),
                ("confirmed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="accounts.channeluser")),
                ("marketer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="accounts.channeluser")),
                ("pickup", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="pickups.pickup")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="catalog.product")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
                    models.Index(fields=["marketer", "status"], name="order_marketer_status_idx"),
                ],
            },
        ),
    ]
