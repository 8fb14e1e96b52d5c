"""FoodSaver database management CLI.

Creates and drops the schema for every bounded context, and seeds a small
demo dataset for local development.

Usage:
    python src/marketplace/manage.py setup-db            # Create all tables
    python src/marketplace/manage.py drop-db             # Drop all tables
    python src/marketplace/manage.py seed                # Load demo data
    python src/marketplace/manage.py setup-db --env test
"""

import argparse
import sys
from datetime import UTC, datetime, timedelta

from marketplace.bootstrap import Marketplace, build_marketplace
from shared.config import load_config


def setup_database(marketplace: Marketplace) -> None:
    print(f"Creating schema on {marketplace.database.engine.url.render_as_string(hide_password=True)}...")
    marketplace.setup_db()
    print("Done.")


def drop_database(marketplace: Marketplace) -> None:
    print(f"Dropping schema on {marketplace.database.engine.url.render_as_string(hide_password=True)}...")
    marketplace.drop_db()
    print("Done.")


def seed_database(marketplace: Marketplace) -> None:
    """Load one restaurant with a few surplus items and a welcome coupon."""
    marketplace.setup_db()

    restaurant_id = marketplace.restaurants.create(
        owner_id=2,
        name="Green Leaf Kitchen",
        description="Vegetarian meals rescued at closing time",
        category="Indian",
        address="12 Park Lane, Pune",
        phone="+91 20 5555 0101",
    )
    print(f"  restaurant {restaurant_id} created")

    for name, original, discounted, quantity in [
        ("Vegetable Biryani", 12.0, 6.0, 10),
        ("Paneer Wrap", 8.0, 4.0, 5),
        ("Mango Lassi", 4.0, 2.0, 20),
    ]:
        item_id = marketplace.catalog.create(
            restaurant_id=restaurant_id,
            name=name,
            original_price=original,
            discounted_price=discounted,
            quantity_available=quantity,
        )
        print(f"  food item {item_id} ({name}) created")

    now = datetime.now(UTC)
    coupon_id = marketplace.coupons.create(
        code="WELCOME10",
        type="percentage",
        value=10,
        valid_from=now,
        valid_until=now + timedelta(days=30),
        max_discount=5.0,
        usage_limit=100,
    )
    print(f"  coupon {coupon_id} (WELCOME10) created")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="FoodSaver database management")
    parser.add_argument("--env", help="Configuration environment (default: FOODSAVER_ENV or development)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed", help="Create tables and load demo data")

    args = parser.parse_args()

    marketplace = build_marketplace(load_config(env=args.env))
    try:
        if args.command == "setup-db":
            setup_database(marketplace)
        elif args.command == "drop-db":
            drop_database(marketplace)
        elif args.command == "seed":
            seed_database(marketplace)
        else:
            parser.print_help()
            sys.exit(1)
    finally:
        marketplace.close()


if __name__ == "__main__":
    main()
