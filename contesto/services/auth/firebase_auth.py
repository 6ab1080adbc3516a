import os
import requests
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests
from fastapi.concurrency import run_in_threadpool
from typing import Optional, Dict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class FirebaseAuthService:
    """Verifies Firebase ID tokens issued to the frontend"""

    def __init__(self, project_id: Optional[str] = None):
        self.project_id = project_id or os.getenv("FIREBASE_PROJECT_ID")
        if not self.project_id:
            print("[WARN] FIREBASE_PROJECT_ID not found in environment, all tokens will be rejected")
        # One HTTP session for fetching Google's signing certificates
        self.session = requests.Session()
        self.request = google_requests.Request(session=self.session)

    @property
    def issuer(self) -> str:
        return f"https://securetoken.google.com/{self.project_id}"

    def _verify(self, token: str) -> Dict:
        return id_token.verify_firebase_token(
            token,
            self.request,
            audience=self.project_id
        )

    async def verify_token(self, token: str) -> Optional[Dict]:
        """Verify a Firebase ID token and return the caller's identity, or None"""
        # Tokens are only accepted for a configured project
        if not self.project_id:
            print("[ERROR] FIREBASE_PROJECT_ID is not set, rejecting token")
            return None

        try:
            claims = await run_in_threadpool(self._verify, token)

            # Verify issuer
            if not claims or claims.get("iss") != self.issuer:
                return None

            if not claims.get("email"):
                return None

            return {
                "uid": claims.get("sub") or claims.get("user_id"),
                "email": claims["email"].lower(),
                "email_verified": claims.get("email_verified", False),
                "name": claims.get("name"),
                "picture": claims.get("picture")
            }

        except ValueError as e:
            # Invalid, expired or wrongly addressed token
            print(f"[WARN] Firebase token verification failed: {e}")
            return None
        except Exception as e:
            print(f"[ERROR] Error verifying Firebase token: {e}")
            return None

    def close(self):
        """Release the certificate-fetching session"""
        self.session.close()


firebase_auth_service = FirebaseAuthService()
