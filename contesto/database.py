import os
from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING

# Load environment variables
load_dotenv()


class Database:
    client: Optional[AsyncIOMotorClient] = None

    @classmethod
    async def connect_db(cls):
        """Connect to MongoDB"""
        mongodb_url = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        cls.client = AsyncIOMotorClient(mongodb_url)
        print("[OK] Connected to MongoDB")

        if not await cls.supports_transactions():
            print("[WARN] MongoDB is a standalone server, winner selection needs a replica set or mongos")

        # Create indexes
        await cls.create_indexes()

    @classmethod
    async def supports_transactions(cls) -> bool:
        """Whether the connected deployment is a replica set member or mongos"""
        try:
            hello = await cls.client.admin.command("hello")
        except Exception as e:
            print(f"[WARN] Could not read MongoDB topology: {e}")
            return False
        return bool(hello.get("setName")) or hello.get("msg") == "isdbgrid"

    @classmethod
    async def create_indexes(cls):
        """Create database indexes (uniqueness is enforced here, not in handlers)"""
        db = cls.get_db()

        # Users: one account per email
        try:
            await db.users.create_index([("email", ASCENDING)], unique=True)
            print("[OK] Created unique index on users.email")
        except Exception as e:
            print(f"[WARN] Index on users.email may already exist: {e}")

        # Creator applications: one per email
        try:
            await db.creators.create_index([("email", ASCENDING)], unique=True)
            await db.creators.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            print("[OK] Created indexes on creators")
        except Exception as e:
            print(f"[WARN] Indexes on creators may already exist: {e}")

        # Contests
        try:
            await db.contests.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            await db.contests.create_index([("creatorEmail", ASCENDING)])
            await db.contests.create_index([("category", ASCENDING)])
            print("[OK] Created indexes on contests")
        except Exception as e:
            print(f"[WARN] Indexes on contests may already exist: {e}")

        # Participants: one per (contest, user)
        try:
            await db.participants.create_index(
                [("contestId", ASCENDING), ("userEmail", ASCENDING)],
                unique=True
            )
            await db.participants.create_index([("userEmail", ASCENDING), ("joinedAt", DESCENDING)])
            print("[OK] Created indexes on participants")
        except Exception as e:
            print(f"[WARN] Indexes on participants may already exist: {e}")

        # Payments: transactionId is the idempotency key
        try:
            await db.payments.create_index([("transactionId", ASCENDING)], unique=True)
            await db.payments.create_index([("userEmail", ASCENDING), ("paidAt", DESCENDING)])
            await db.payments.create_index([("contestId", ASCENDING), ("userEmail", ASCENDING)])
            print("[OK] Created indexes on payments")
        except Exception as e:
            print(f"[WARN] Indexes on payments may already exist: {e}")

        # Submissions: one per (contest, user)
        try:
            await db.submissions.create_index(
                [("contestId", ASCENDING), ("userEmail", ASCENDING)],
                unique=True
            )
            await db.submissions.create_index([("contestId", ASCENDING), ("status", ASCENDING)])
            print("[OK] Created indexes on submissions")
        except Exception as e:
            print(f"[WARN] Indexes on submissions may already exist: {e}")

    @classmethod
    async def close_db(cls):
        """Close MongoDB connection"""
        if cls.client:
            cls.client.close()
            cls.client = None
            print("[OK] Disconnected from MongoDB")

    @classmethod
    def get_db(cls):
        """Get database instance"""
        database_name = os.getenv("DATABASE_NAME", "contesto_db")
        return cls.client[database_name]


async def get_database():
    """Dependency to get database"""
    return Database.get_db()
