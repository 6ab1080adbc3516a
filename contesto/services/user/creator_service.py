from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime
from pymongo.errors import DuplicateKeyError
from contesto.models.creator import CreatorApply, CreatorStatus
from contesto.models.user import UserRole
from contesto.utils.serialize import parse_object_id
from contesto.utils.response import ServiceResult


class CreatorService:
    """Service for the creator application workflow"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.creators = db.creators
        self.users = db.users

    async def get_applications(self, status: Optional[CreatorStatus] = None, limit: int = 500) -> List[Dict]:
        """List creator applications, newest first"""
        query = {"status": status.value} if status else {}
        cursor = self.creators.find(query).sort("createdAt", -1)
        return await cursor.to_list(length=limit)

    async def get_application_by_email(self, email: str) -> Optional[Dict]:
        """Get the caller's own application"""
        return await self.creators.find_one({"email": email.lower()})

    async def apply(self, email: str, application: CreatorApply) -> ServiceResult:
        """
        Submit a creator application for the caller.

        One application per email, enforced by the unique index on ``creators.email``.
        """
        try:
            email = email.lower()

            user = await self.users.find_one({"email": email})
            if not user:
                return False, "User not found", None, 404

            if user.get("role") == UserRole.ADMIN.value:
                return False, "Admin can't apply to be a creator!", None, 403

            if user.get("role") == UserRole.CREATOR.value:
                return False, "Already a creator", None, 409

            creator = {
                "email": email,
                "name": application.name or user.get("name"),
                "photoURL": application.photo_url or user.get("photoURL"),
                "bio": application.bio,
                "status": CreatorStatus.PENDING.value,
                "createdAt": datetime.utcnow(),
                "reviewedAt": None
            }

            try:
                result = await self.creators.insert_one(creator)
            except DuplicateKeyError:
                return True, "Creator already exist!", {"insertedId": None}, 200

            return True, "Application submitted successfully", {"insertedId": result.inserted_id}, 201

        except Exception as e:
            print(f"[ERROR] Failed to submit creator application: {str(e)}")
            return False, "Internal server error", None, 500

    async def review(self, creator_id: str, status: CreatorStatus) -> ServiceResult:
        """
        Approve or reject an application and sync the applicant's role.

        Approved applicants become creators; rejected ones go back to users.
        Admin accounts are never demoted here.
        """
        try:
            oid = parse_object_id(creator_id)
            if oid is None:
                return False, "Invalid creator ID", None, 400

            creator = await self.creators.find_one({"_id": oid})
            if not creator:
                return False, "Creator application not found", None, 404

            now = datetime.utcnow()
            result = await self.creators.update_one(
                {"_id": oid},
                {"$set": {"status": status.value, "reviewedAt": now}}
            )

            role_result = None
            if status == CreatorStatus.APPROVED:
                role_result = await self.users.update_one(
                    {"email": creator["email"], "role": {"$ne": UserRole.ADMIN.value}},
                    {"$set": {"role": UserRole.CREATOR.value, "updatedAt": now}}
                )
            elif status == CreatorStatus.REJECTED:
                role_result = await self.users.update_one(
                    {"email": creator["email"], "role": UserRole.CREATOR.value},
                    {"$set": {"role": UserRole.USER.value, "updatedAt": now}}
                )

            print(f"[INFO] Creator application {creator_id} marked {status.value}")

            return True, f"Application {status.value}", {
                "modifiedCount": result.modified_count,
                "roleUpdated": bool(role_result and role_result.modified_count)
            }, 200

        except Exception as e:
            print(f"[ERROR] Failed to review creator application: {str(e)}")
            return False, "Internal server error", None, 500

    async def delete(self, creator_id: str) -> ServiceResult:
        """Delete an application; an approved creator loses the creator role"""
        try:
            oid = parse_object_id(creator_id)
            if oid is None:
                return False, "Invalid creator ID", None, 400

            creator = await self.creators.find_one_and_delete({"_id": oid})
            if not creator:
                return False, "Creator application not found", None, 404

            await self.users.update_one(
                {"email": creator["email"], "role": UserRole.CREATOR.value},
                {"$set": {"role": UserRole.USER.value, "updatedAt": datetime.utcnow()}}
            )

            return True, "Application deleted", {"deletedCount": 1}, 200

        except Exception as e:
            print(f"[ERROR] Failed to delete creator application: {str(e)}")
            return False, "Internal server error", None, 500
