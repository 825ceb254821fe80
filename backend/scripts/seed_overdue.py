#!/usr/bin/env python3
"""
Seed test customers with overdue DEBT transactions for one user.

Run: cd backend && poetry run python scripts/seed_overdue.py [--phone +998901234567] [--count 5]
Without --phone the oldest user is used.
"""
import argparse
import sys
from datetime import timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.db.session import SessionLocal
from app.models import Customer, Transaction, TransactionType, User
from app.services.due_debts import local_today

DEFAULT_CUSTOMERS = [
    ("Abdulloh Karimov", "+998901001010"),
    ("Dilshod Rahimov", "+998902002020"),
    ("Gulnora Azimova", "+998903003030"),
    ("Jasur Toshmatov", "+998904004040"),
    ("Kamola Umarova", "+998905005050"),
    ("Laziz Botirov", "+998906006060"),
    ("Malika Sharipova", "+998907007070"),
    ("Nodir Saidov", "+998908008080"),
    ("Ozoda Mirzayeva", "+998909009090"),
    ("Rustam Xolmatov", "+998911101010"),
]

# (days overdue, amount)
OVERDUE_TEMPLATES = [
    (30, 5_000_000),
    (14, 2_500_000),
    (7, 1_000_000),
    (3, 500_000),
    (1, 200_000),
    (0, 800_000),
    (21, 3_000_000),
    (5, 350_000),
    (10, 1_500_000),
    (2, 150_000),
]


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--phone", help="Seed the user with this phone")
    parser.add_argument("--count", type=int, default=5, help=f"Customers to seed (1-{len(DEFAULT_CUSTOMERS)})")
    args = parser.parse_args()
    if not 1 <= args.count <= len(DEFAULT_CUSTOMERS):
        parser.error(f"--count must be between 1 and {len(DEFAULT_CUSTOMERS)}")

    db = SessionLocal()
    try:
        q = db.query(User)
        user = q.filter(User.phone == args.phone).first() if args.phone else q.order_by(User.created_at).first()
        if user is None:
            print("No matching user. Register in the app first.")
            sys.exit(1)

        today = local_today()
        for (name, phone), (days, amount) in zip(DEFAULT_CUSTOMERS[: args.count], OVERDUE_TEMPLATES):
            customer = (
                db.query(Customer).filter(Customer.user_id == user.id, Customer.phone == phone).first()
                or Customer(user_id=user.id, name=name, phone=phone)
            )
            db.add(customer)
            db.flush()
            db.add(
                Transaction(
                    user_id=user.id,
                    customer_id=customer.id,
                    type=TransactionType.DEBT,
                    amount=amount,
                    note=f"Seed: {days} kun kechikkan" if days else "Seed: bugun muddati",
                    expected_return_date=today - timedelta(days=days),
                )
            )
            print(f"  {name}: {amount} so'm, {days} days overdue")
        db.commit()
        print(f"Done. Seeded {args.count} overdue debts for user {user.id}.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
