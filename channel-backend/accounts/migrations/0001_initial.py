from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ChannelUser",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("unique_id", models.CharField(max_length=32, unique=True)),
                ("role", models.CharField(choices=[("Marketer", "Marketer"), ("Admin", "Admin"), ("SuperAdmin", "Super Admin"), ("MasterAdmin", "Master Admin"), ("Dealer", "Dealer")], db_index=True, default="Marketer", max_length=20)),
                ("name", models.CharField(blank=True, max_length=120)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("location", models.CharField(db_index=True, max_length=80)),
                ("business_name", models.CharField(blank=True, max_length=160)),
                ("is_locked", models.BooleanField(default=False)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                ("lock_reason", models.TextField(blank=True)),
                ("admin", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="marketers", to="accounts.channeluser")),
                ("super_admin", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="admins", to="accounts.channeluser")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="channel_profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["role", "location"], name="accounts_role_location_idx")],
            },
        ),
    ]
