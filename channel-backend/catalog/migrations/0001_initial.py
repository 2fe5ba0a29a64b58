from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("device_name", models.CharField(max_length=120)),
                ("device_model", models.CharField(blank=True, max_length=120)),
                ("device_type", models.CharField(db_index=True, help_text="Commission rates are keyed by this", max_length=60)),
                ("selling_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("cost_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("quantity", models.IntegerField(default=0, help_text="On-hand units (receipts minus confirmed sales)")),
                ("restocked_units", models.PositiveIntegerField(default=0, help_text="Units that came back through confirmed returns")),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("dealer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="products", to="accounts.channeluser")),
            ],
            options={
                "indexes": [models.Index(fields=["dealer", "is_active"], name="catalog_dealer_active_idx")],
            },
        ),
    ]
