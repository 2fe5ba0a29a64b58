from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("device_type", models.CharField(max_length=60, unique=True)),
                ("marketer_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("admin_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("super_admin_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
            ],
        ),
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("balance", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("owner", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="wallet", to="accounts.channeluser")),
            ],
        ),
        migrations.CreateModel(
            name="CommissionCredit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("beneficiary_role", models.CharField(choices=[("marketer", "Marketer"), ("admin", "Admin"), ("super_admin", "Super Admin")], max_length=16)),
                ("device_type", models.CharField(max_length=60)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("beneficiary", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="commission_credits", to="accounts.channeluser")),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="commission_credits", to="orders.order")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("order", "beneficiary_role"), name="uniq_commission_per_order_role"),
                ],
            },
        ),
    ]
