"""
Seed Admin Account
Promote an account to the admin role. Admin can't be granted through the API
until one admin exists, so the first one is created here.

Usage:
    python seed_admin.py admin@example.com [--name "Site Admin"]
"""
import argparse
import asyncio
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorClient
import os
from dotenv import load_dotenv

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "contesto_db")


async def seed_admin(email: str, name: str = None):
    """Create the account if needed and set its role to admin"""
    print("=" * 60)
    print("Contesto - Seed Admin")
    print("=" * 60)

    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[DATABASE_NAME]

    try:
        email = email.strip().lower()
        now = datetime.utcnow()

        print(f"\n[1] Promoting {email}...")

        result = await db.users.update_one(
            {"email": email},
            {
                "$setOnInsert": {
                    "email": email,
                    "name": name,
                    "photoURL": None,
                    "createdAt": now
                },
                "$set": {"role": "admin", "updatedAt": now}
            },
            upsert=True
        )

        if result.upserted_id:
            print("    [OK] Created new admin account")
        else:
            print("    [OK] Existing account promoted to admin")

        # Admins have no creator application
        removed = await db.creators.delete_one({"email": email})
        if removed.deleted_count:
            print("    [OK] Removed creator application for this account")

        print("\n[2] Current admins:")
        print("-" * 40)
        async for admin in db.users.find({"role": "admin"}, {"email": 1, "name": 1}):
            print(f"    {admin['email']} ({admin.get('name') or '-'})")

        print("\n" + "=" * 60)

    finally:
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Promote an account to admin")
    parser.add_argument("email")
    parser.add_argument("--name", default=None)
    args = parser.parse_args()

    asyncio.run(seed_admin(args.email, args.name))
