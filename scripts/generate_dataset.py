"""
Coffee Sales Dataset Generator
Writes customers.csv, orders.csv and products.csv with the same column names
as the Kaggle "Coffee Bean Sales" files, ready for BatchLoader.
"""

import argparse
import random
import string
from datetime import date, timedelta
from pathlib import Path

import polars as pl
from faker import Faker

from coffee_sales.config import get_settings
from coffee_sales.store.identifiers import CustomerIdGenerator

COFFEE_TYPES = ["Ara", "Exc", "Lib", "Rob"]
ROAST_TYPES = ["L", "M", "D"]
SIZES = [0.2, 0.5, 1.0, 2.5]

# Price per 100g for a medium roast, and profit margin, per coffee type
BASE_PRICE_PER_100G = {"Ara": 2.25, "Exc": 2.75, "Lib": 2.65, "Rob": 1.99}
PROFIT_MARGIN = {"Ara": 0.09, "Exc": 0.11, "Lib": 0.13, "Rob": 0.06}
ROAST_FACTOR = {"L": 1.1, "M": 1.0, "D": 0.9}
# Larger bags are cheaper per 100g
SIZE_DISCOUNT = {0.2: 1.0, 0.5: 0.9, 1.0: 0.85, 2.5: 0.75}

COUNTRIES = {
    "United States": ("en_US", 0.79),
    "Ireland": ("en_IE", 0.14),
    "United Kingdom": ("en_GB", 0.07),
}

FIRST_ORDER_DATE = date(2019, 1, 1)
LAST_ORDER_DATE = date(2022, 8, 31)


# ==========================================
# PRODUCTS (48, one per type / roast / size)
# ==========================================
def generate_products() -> pl.DataFrame:
    print("Generating products...")

    rows = []
    for coffee_type in COFFEE_TYPES:
        for roast in ROAST_TYPES:
            for size in SIZES:
                per_100g = BASE_PRICE_PER_100G[coffee_type] * ROAST_FACTOR[roast] * SIZE_DISCOUNT[size]
                unit_price = round(per_100g * size * 10, 3)
                rows.append({
                    "Product ID": f"{coffee_type[0]}-{roast}-{size:g}",
                    "Coffee Type": coffee_type,
                    "Roast Type": roast,
                    "Size": size,
                    "Unit Price": unit_price,
                    "Price per 100g": round(unit_price / (size * 10), 4),
                    "Profit": round(unit_price * PROFIT_MARGIN[coffee_type], 5),
                })

    df = pl.DataFrame(rows)
    print(f"   products.csv: {len(df):,} rows")
    return df


# ==========================================
# CUSTOMERS
# ==========================================
def generate_customers(n: int, rng: random.Random, seed: int) -> pl.DataFrame:
    print(f"Generating {n:,} customers...")

    next_id = CustomerIdGenerator(seed=seed)
    fakers = {}
    for country, (locale, _) in COUNTRIES.items():
        fakers[country] = Faker(locale)
        fakers[country].seed_instance(seed)

    countries = rng.choices(list(COUNTRIES), weights=[w for _, w in COUNTRIES.values()], k=n)

    rows = []
    for country in countries:
        fake = fakers[country]
        rows.append({
            "Customer ID": next_id(),
            "Customer Name": fake.name(),
            "Email": fake.email() if rng.random() > 0.2 else None,
            "Phone Number": fake.phone_number() if rng.random() > 0.13 else None,
            "Address Line 1": fake.street_address(),
            "City": fake.city(),
            "Country": country,
            "Postcode": fake.postcode(),
            "Loyalty Card": "Yes" if rng.random() < 0.49 else "No",
        })

    df = pl.DataFrame(rows)
    print(f"   customers.csv: {len(df):,} rows")
    return df


# ==========================================
# ORDERS
# ==========================================
def generate_orders(n: int, customer_ids: list, product_ids: list, rng: random.Random, seed: int) -> pl.DataFrame:
    print(f"Generating {n:,} orders...")

    fake = Faker()
    fake.seed_instance(seed)

    span = (LAST_ORDER_DATE - FIRST_ORDER_DATE).days
    order_ids = set()
    while len(order_ids) < n:
        order_ids.add(fake.bothify(text="???-#####-###", letters=string.ascii_uppercase))

    rows = []
    for order_id in sorted(order_ids):
        rows.append({
            "Order ID": order_id,
            "Order Date": (FIRST_ORDER_DATE + timedelta(days=rng.randint(0, span))).isoformat(),
            "Customer ID": rng.choice(customer_ids),
            "Product ID": rng.choice(product_ids),
            "Quantity": rng.randint(1, 6),
        })

    df = pl.DataFrame(rows).sort("Order Date")
    print(f"   orders.csv: {len(df):,} rows")
    return df


# ==========================================
# MAIN
# ==========================================
def main():
    parser = argparse.ArgumentParser(description="Generate coffee sales source files")
    parser.add_argument("--customers", type=int, default=1000, help="Number of customers")
    parser.add_argument("--orders", type=int, default=1000, help="Number of orders")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output-dir", default=None, help="Output directory (default: ingestion source dir)")
    args = parser.parse_args()

    ingestion = get_settings().ingestion
    output_dir = Path(args.output_dir or ingestion.source_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    rng = random.Random(args.seed)

    print("=" * 60)
    print("Coffee Sales Dataset Generator")
    print("=" * 60 + "\n")

    products = generate_products()
    customers = generate_customers(args.customers, rng, args.seed)
    orders = generate_orders(
        args.orders,
        customers["Customer ID"].to_list(),
        products["Product ID"].to_list(),
        rng,
        args.seed,
    )

    products.write_csv(output_dir / ingestion.products_file)
    customers.write_csv(output_dir / ingestion.customers_file)
    orders.write_csv(output_dir / ingestion.orders_file)

    print(f"\nOutput: {output_dir}\n")


if __name__ == "__main__":
    main()
