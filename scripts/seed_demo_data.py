"""
Seeds the database with default settings, demo profiles and transfers.

Profiles:
- 1 admin, 3 verified senders, 3 unverified senders (with KYC documents)
- 1 receiver referred by the first verified sender

Transfers: ~40 spread across every status, fee/rate snapshotted at creation.
"""
import sys
import os
import random
from datetime import datetime, timedelta
from decimal import Decimal

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from turapay.database import engine, SessionLocal, Base
from turapay import models
from turapay.services.fees import build_quote
from turapay.services.settings import seed_default_settings

random.seed(42)

STATUSES = (
    ["pending"] * 10 +
    ["processing"] * 3 +
    ["deposited"] * 10 +
    ["completed"] * 8 +
    ["paid"] * 3 +
    ["rejected"] * 4 +
    ["failed"] * 2
)
COUNTRIES = ["Zambia", "International"]
FEE_PERCENTAGE = Decimal("2")
ZMW_RATE = Decimal("22")

BASE_TIME = datetime(2026, 1, 15, 8, 0, 0)


def make_profile(profile_id, name, phone, verified=False, is_admin=False, referred_by=None, kyc=False):
    return models.Profile(
        id=profile_id,
        full_name=name,
        phone_number=phone,
        verified=verified,
        is_admin=is_admin,
        referral_code=f"REF{profile_id[-4:].upper()}",
        referred_by=referred_by,
        access_token=f"demo-token-{profile_id}",
        id_document_url=f"kyc/{profile_id}/id.jpg" if kyc else None,
        selfie_url=f"kyc/{profile_id}/selfie.jpg" if kyc else None,
    )


def generate_profiles():
    profiles = [make_profile("prof_admin", "Operations Admin", "+260970000000", verified=True, is_admin=True)]
    for i in range(1, 4):
        profiles.append(make_profile(f"prof_v{i:03d}", f"Verified Sender {i}", f"+26097000{i:04d}", verified=True))
    for i in range(1, 4):
        profiles.append(make_profile(f"prof_u{i:03d}", f"New Sender {i}", f"+26096000{i:04d}", kyc=True))
    profiles.append(make_profile("prof_r001", "Referred Receiver", "+260955550001", referred_by="prof_v001"))
    return profiles


def generate_transactions(senders):
    transactions = []
    for i, status in enumerate(STATUSES):
        sender = random.choice(senders)
        limit = 1000 if sender.verified else 20
        quote = build_quote(round(random.uniform(5, limit), 2), FEE_PERCENTAGE, ZMW_RATE)
        created_at = BASE_TIME + timedelta(hours=random.uniform(0, 72))
        receiver_phone = "+260955550001" if i % 7 == 0 else f"+26077{random.randint(1000000, 9999999)}"
        txn = models.Transaction(
            sender_id=sender.id,
            receiver_name=f"Receiver {i}",
            receiver_phone=receiver_phone,
            receiver_country=random.choice(COUNTRIES),
            amount=quote.amount,
            fee=quote.fee,
            total_amount=quote.total_amount,
            currency="USD",
            receiver_currency="ZMW",
            exchange_rate=quote.exchange_rate,
            payout_amount=quote.payout_amount,
            status=status,
            payout_method="mobile_money",
            created_at=created_at,
        )
        if status in ("deposited", "paid", "completed"):
            txn.payment_date = created_at + timedelta(hours=2)
            txn.tid = f"TID{random.randint(10000000, 99999999)}"
        if status == "processing":
            txn.payment_reference = f"demo-ref-{i:04d}"
        if status == "rejected":
            txn.rejection_reason = "Proof of payment did not match the amount sent"
        transactions.append(txn)
    return transactions


def main():
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_default_settings(db)

        existing = db.query(models.Transaction).count()
        if existing > 0:
            print(f"Database already has {existing} transactions. Skipping seed.")
            return

        profiles = generate_profiles()
        db.add_all(profiles)
        db.commit()

        senders = [p for p in profiles if not p.is_admin and p.referred_by is None]
        db.add_all(generate_transactions(senders))
        db.commit()

        count = db.query(models.Transaction).count()
        print(f"Successfully seeded {len(profiles)} profiles and {count} transactions.")

        # Print summary
        from sqlalchemy import func as sqlfunc
        states = db.query(
            models.Transaction.status,
            sqlfunc.count(models.Transaction.id)
        ).group_by(models.Transaction.status).all()
        print("\nStatus distribution:")
        for state, cnt in states:
            print(f"  {state}: {cnt}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
