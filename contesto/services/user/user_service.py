import re
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime
from pymongo import ReturnDocument
from contesto.models.user import UserCreate, UserUpdate, UserRole
from contesto.utils.serialize import parse_object_id
from contesto.utils.response import ServiceResult


class UserService:
    """Service for user account operations"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.users = db.users

    async def get_user_by_email(self, email: str) -> Optional[Dict]:
        """Get user by email"""
        return await self.users.find_one({"email": email.lower()})

    async def get_role(self, email: str) -> Optional[str]:
        """Get the stored role for an email, None if the account doesn't exist"""
        user = await self.users.find_one({"email": email.lower()}, {"role": 1})
        return user.get("role") if user else None

    async def create_user(self, user_data: UserCreate) -> ServiceResult:
        """
        Register a user on first sign-in.

        Runs as a single insert-only upsert so concurrent sign-ins cannot create
        two accounts. Existing accounts are not written to.
        """
        try:
            now = datetime.utcnow()
            email = user_data.email.lower()

            result = await self.users.update_one(
                {"email": email},
                {
                    "$setOnInsert": {
                        "email": email,
                        "name": user_data.name,
                        "photoURL": user_data.photo_url,
                        "role": UserRole.USER.value,
                        "createdAt": now,
                        "updatedAt": now
                    }
                },
                upsert=True
            )

            if result.upserted_id is None:
                return True, "user already exist", {"insertedId": None}, 200

            return True, "User created successfully", {"insertedId": result.upserted_id}, 201

        except Exception as e:
            print(f"[ERROR] Failed to create user: {str(e)}")
            return False, "Internal server error", None, 500

    async def search_users(self, search_text: Optional[str] = None, limit: int = 500) -> List[Dict]:
        """List users, optionally filtered by a case-insensitive name/email match"""
        query = {}

        if search_text:
            pattern = re.escape(search_text.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}}
            ]

        cursor = self.users.find(query).sort("createdAt", -1)
        return await cursor.to_list(length=limit)

    async def update_role(self, user_id: str, role: UserRole, acting_email: str) -> ServiceResult:
        """Change a user's role (admin action)"""
        try:
            oid = parse_object_id(user_id)
            if oid is None:
                return False, "Invalid user ID", None, 400

            user = await self.users.find_one({"_id": oid})
            if not user:
                return False, "User not found", None, 404

            # Admins cannot demote themselves
            if user["email"] == acting_email.lower() and role != UserRole.ADMIN:
                return False, "Admins cannot change their own role", None, 400

            result = await self.users.update_one(
                {"_id": oid},
                {"$set": {"role": role.value, "updatedAt": datetime.utcnow()}}
            )

            return True, "Role updated successfully", {
                "matchedCount": result.matched_count,
                "modifiedCount": result.modified_count
            }, 200

        except Exception as e:
            print(f"[ERROR] Failed to update role: {str(e)}")
            return False, "Internal server error", None, 500

    async def update_profile(self, email: str, profile: UserUpdate) -> ServiceResult:
        """Update the caller's own name and photo"""
        try:
            update_fields = profile.model_dump(exclude_none=True, by_alias=True)
            if not update_fields:
                return False, "No fields to update", None, 400

            update_fields["updatedAt"] = datetime.utcnow()

            user = await self.users.find_one_and_update(
                {"email": email.lower()},
                {"$set": update_fields},
                return_document=ReturnDocument.AFTER
            )

            if not user:
                return False, "User not found", None, 404

            return True, "Profile updated successfully", user, 200

        except Exception as e:
            print(f"[ERROR] Failed to update profile: {str(e)}")
            return False, "Internal server error", None, 500
