# consultify/services/identity.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from consultify.config import HTTP_TIMEOUT_SECONDS, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
DEFAULT_ROLE = "patient"


class IdentityLookupError(Exception):
    """Raised when the identity provider cannot resolve a user."""


@dataclass
class UserProfile:
    id: str
    email: str = ""
    name: str = ""
    role: str = DEFAULT_ROLE
    language: str = DEFAULT_LANGUAGE
    specialization: Optional[str] = None

    @classmethod
    def from_auth_user(cls, user: Dict[str, Any]) -> "UserProfile":
        """Build a profile from a Supabase auth user and its user_metadata blob."""
        meta = user.get("user_metadata") or {}
        return cls(
            id=user["id"],
            email=user.get("email") or "",
            name=meta.get("name") or "",
            role=meta.get("role") or DEFAULT_ROLE,
            language=meta.get("language") or DEFAULT_LANGUAGE,
            specialization=meta.get("specialization") or None,
        )


class SupabaseIdentityProvider:
    """Reads users through the Supabase auth admin REST API."""

    def __init__(self, url: str = SUPABASE_URL, service_key: str = SUPABASE_SERVICE_ROLE_KEY, per_page: int = 1000):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.per_page = per_page

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
        }

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        if not self.url or not self.service_key:
            raise IdentityLookupError("Supabase credentials not configured")
        try:
            response = requests.get(
                f"{self.url}/auth/v1/admin{path}",
                params=params,
                headers=self._headers(),
                timeout=HTTP_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise IdentityLookupError(f"Identity lookup failed for {path}: {exc}") from exc

    def get_user(self, user_id: str) -> UserProfile:
        data = self._get(f"/users/{user_id}")
        # admin API returns the user object directly; some versions wrap it
        user = data.get("user", data)
        if not user or "id" not in user:
            raise IdentityLookupError(f"User {user_id} not found")
        return UserProfile.from_auth_user(user)

    def list_users(self) -> List[UserProfile]:
        users: List[UserProfile] = []
        page = 1
        while True:
            data = self._get("/users", params={"page": page, "per_page": self.per_page})
            batch = data.get("users", [])
            users.extend(UserProfile.from_auth_user(u) for u in batch)
            if len(batch) < self.per_page:
                return users
            page += 1

    def list_users_by_role(self, role: str) -> List[UserProfile]:
        return [u for u in self.list_users() if u.role == role]


# ------------------------------- Best-effort lookups -------------------------------
def language_for(identity, user_id: str) -> str:
    try:
        return identity.get_user(user_id).language or DEFAULT_LANGUAGE
    except IdentityLookupError as e:
        logger.error(f"Failed to fetch user language for {user_id}: {e}")
        return DEFAULT_LANGUAGE


def profile_or_placeholder(identity, user_id: str, placeholder_name: str = "Unknown User") -> UserProfile:
    """Return the user's profile, or a placeholder profile if the lookup fails."""
    try:
        profile = identity.get_user(user_id)
    except IdentityLookupError as e:
        logger.error(f"Failed to fetch user data for {user_id}: {e}")
        return UserProfile(id=user_id, name=placeholder_name)
    if not profile.name:
        profile.name = placeholder_name
    return profile


_identity_provider: Optional[SupabaseIdentityProvider] = None


def get_identity_provider() -> SupabaseIdentityProvider:
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = SupabaseIdentityProvider()
    return _identity_provider
