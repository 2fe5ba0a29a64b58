"""
Management command to audit unit conservation.

For every pickup, the units sold through it, still reserved by it, and
released or handed off from it must add up to the number it reserved.
For every product, the on-hand count must equal the sum of the movement
log deltas and the number of units not yet sold.

Usage:
    python manage.py inventory_check
    python manage.py inventory_check --product <product_id>
    python manage.py inventory_check --verbose

Exit codes:
    0 - Everything balances (clean)
    1 - One or more mismatches found
"""

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count, Q, Sum

from catalog.models import Product
from inventory.models import InventoryUnit, InventoryMovement
from pickups.models import Pickup

Status = InventoryUnit.Status
Kind = InventoryMovement.Kind


class Command(BaseCommand):
    help = "Validate that no inventory unit was lost or duplicated across pickups"

    def add_arguments(self, parser):
        parser.add_argument(
            "--product",
            type=int,
            help="Check a specific product only",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed output for each pickup checked",
        )

    def handle(self, *args, **options):
        product_id = options.get("product")
        verbose = options.get("verbose", False)

        products = Product.objects.all()
        pickups = Pickup.objects.all()
        if product_id:
            if not products.filter(pk=product_id).exists():
                raise CommandError(f"Product with id {product_id} does not exist")
            products = products.filter(pk=product_id)
            pickups = pickups.filter(product_id=product_id)

        mismatches = []

        unit_counts = pickups.annotate(
            sold=Count("units", filter=Q(units__status=Status.SOLD)),
            reserved=Count("units", filter=Q(units__status=Status.RESERVED)),
        ).order_by("id")
        released = dict(
            InventoryMovement.objects.filter(pickup__in=pickups, kind__in=[Kind.RELEASE, Kind.TRANSFER_OUT])
            .values("pickup_id")
            .annotate(total=Sum("quantity"))
            .values_list("pickup_id", "total")
        )

        checked = 0
        for p in unit_counts:
            checked += 1
            out = released.get(p.id, 0) or 0
            accounted = p.sold + p.reserved + out
            if verbose:
                self.stdout.write(
                    f"pickup {p.id} ({p.status}): sold={p.sold} reserved={p.reserved} "
                    f"released={out} / reserved_count={p.reserved_count}"
                )
            if accounted != p.reserved_count:
                mismatches.append(
                    f"pickup {p.id} ({p.status}): accounted {accounted} units, "
                    f"reserved_count is {p.reserved_count}"
                )

        for product in products.annotate(
            unsold=Count("units", filter=~Q(units__status=Status.SOLD)),
        ):
            logged = (
                InventoryMovement.objects.filter(product=product).aggregate(total=Sum("on_hand_delta"))["total"]
                or 0
            )
            if not (product.quantity == logged == product.unsold):
                mismatches.append(
                    f"product {product.id}: on hand {product.quantity}, "
                    f"movement log {logged}, unsold units {product.unsold}"
                )

        self.stdout.write("")
        self.stdout.write("=" * 60)
        self.stdout.write(f"Checked: {checked} pickups, {products.count()} products")
        self.stdout.write(f"Mismatches: {len(mismatches)}")

        if mismatches:
            self.stdout.write("")
            self.stdout.write(self.style.ERROR("MISMATCHES FOUND:"))
            for line in mismatches:
                self.stdout.write(self.style.ERROR(f"  - {line}"))
            raise CommandError(f"{len(mismatches)} inventory mismatch(es) found", returncode=1)

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS("All pickups and products balance (clean)"))
