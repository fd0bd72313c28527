"""
Session core: refresh-token rotation and the account operations built on it.

A user has at most one live refresh token, stored on `users.refresh_token`.
A presented refresh token is accepted only if it verifies AND equals the
stored value; rotation overwrites it and logout clears it, so any older
token is dead even before it expires.
"""
from __future__ import annotations

import hmac
import logging
from typing import Optional, Tuple

from models.db_storage import DuplicateUserError
from models.user import User, normalize_identity
from utils.errors import AccountError, ErrorKind
from utils.security import UserWrite, prepare_user_fields, verify_password
from utils.tokens import TokenIssuer, TokenPair, TokenVerifier
from utils.uploader import BlobUploader

logger = logging.getLogger(__name__)

MEDIA_FIELDS = {"avatar": "Avatar", "cover_image": "Cover image"}


def _same_token(presented: str, stored: Optional[str]) -> bool:
    if stored is None:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))


class RefreshRotationManager:
    def __init__(self, storage, issuer: TokenIssuer, verifier: TokenVerifier):
        self.storage = storage
        self.issuer = issuer
        self.verifier = verifier

    def issue(self, user_id: str) -> TokenPair:
        """Mint a fresh pair and make its refresh token the user's only live one."""
        pair = self.issuer.issue_pair(user_id)
        if not self.storage.update_user_fields(user_id, {"refresh_token": pair.refresh_token}):
            raise AccountError(ErrorKind.NOT_FOUND, "User does not exist")
        return pair

    def rotate(self, presented: Optional[str]) -> TokenPair:
        if presented is not None and not isinstance(presented, str):
            raise AccountError(ErrorKind.INVALID_TOKEN, "Invalid refresh token")
        if not presented or not presented.strip():
            raise AccountError(ErrorKind.UNAUTHORIZED, "Unauthorized request")

        claims = self.verifier.verify_refresh_token(presented)

        # Re-read the record right before comparing; never trust a cached copy
        user = self.storage.find_user_by_id(claims.user_id)
        if user is None:
            raise AccountError(ErrorKind.INVALID_TOKEN, "Invalid refresh token")

        if not _same_token(presented, user.refresh_token):
            logger.warning("Refresh token reuse rejected for user %s", user.id)
            raise AccountError(ErrorKind.TOKEN_REUSE, "Refresh token is expired or used")

        pair = self.issuer.issue_pair(user.id)
        swapped = self.storage.update_user_fields(
            user.id,
            {"refresh_token": pair.refresh_token},
            expected={"refresh_token": presented},
        )
        if not swapped:
            # Another rotation with the same token committed first
            logger.warning("Concurrent refresh lost the race for user %s", user.id)
            raise AccountError(ErrorKind.TOKEN_REUSE, "Refresh token is expired or used")

        logger.info("Rotated refresh token for user %s", user.id)
        return pair

    def revoke(self, user_id: str) -> None:
        self.storage.update_user_fields(user_id, {"refresh_token": None})


class SessionManager:
    """Account operations, independent of the HTTP framework."""

    def __init__(
        self,
        storage,
        rotation: RefreshRotationManager,
        uploader: Optional[BlobUploader] = None,
        revoke_on_password_change: bool = False,
    ):
        self.storage = storage
        self.rotation = rotation
        self.uploader = uploader
        self.revoke_on_password_change = revoke_on_password_change

    def _load(self, user_id: str) -> User:
        user = self.storage.find_user_by_id(user_id)
        if user is None:
            raise AccountError(ErrorKind.NOT_FOUND, "User does not exist")
        return user

    def _upload(self, local_path: Optional[str], label: str) -> Optional[str]:
        if not local_path:
            return None
        url = self.uploader.upload(local_path) if self.uploader else None
        if not url:
            raise AccountError(ErrorKind.VALIDATION_ERROR, f"{label} upload failed")
        return url

    def register(
        self,
        username: str,
        email: str,
        password: str,
        fullname: Optional[str] = None,
        avatar_path: Optional[str] = None,
        cover_image_path: Optional[str] = None,
    ) -> User:
        required = {"username": username, "email": email, "password": password}
        blank = sorted(name for name, value in required.items() if not value or not value.strip())
        if blank:
            raise AccountError(
                ErrorKind.VALIDATION_ERROR,
                "Required fields cannot be empty",
                details={name: ["Field may not be blank."] for name in blank},
            )

        username, email = normalize_identity(username), normalize_identity(email)
        if self.storage.find_user_by_username_or_email(username, email):
            raise AccountError(ErrorKind.CONFLICT, "User already exists")

        fields = {
            "username": username,
            "email": email,
            "fullname": fullname.strip() if fullname else None,
            "avatar": self._upload(avatar_path, "Avatar"),
            "cover_image": self._upload(cover_image_path, "Cover image"),
        }
        try:
            user = self.storage.create_user(
                prepare_user_fields(UserWrite(fields=fields, password=password, password_changing=True))
            )
        except DuplicateUserError:
            # Lost a race with a concurrent registration
            raise AccountError(ErrorKind.CONFLICT, "User already exists") from None

        logger.info("Registered user %s", user.username)
        return user

    def login(
        self,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[User, TokenPair]:
        if not username and not email:
            raise AccountError(ErrorKind.VALIDATION_ERROR, "username or email is required")

        user = self.storage.find_user_by_username_or_email(username, email)
        if user is None:
            raise AccountError(ErrorKind.NOT_FOUND, "User does not exist")
        if not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", user.username)
            raise AccountError(ErrorKind.INVALID_CREDENTIAL, "Invalid user credentials")

        pair = self.rotation.issue(user.id)
        logger.info("User %s logged in", user.username)
        return self._load(user.id), pair

    def logout(self, user_id: str) -> None:
        self.rotation.revoke(user_id)
        logger.info("User %s logged out", user_id)

    def refresh(self, presented: Optional[str]) -> TokenPair:
        return self.rotation.rotate(presented)

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        if not new_password or not new_password.strip():
            raise AccountError(ErrorKind.VALIDATION_ERROR, "New password cannot be empty")

        user = self._load(user_id)
        if not verify_password(old_password, user.password_hash):
            raise AccountError(ErrorKind.INVALID_CREDENTIAL, "Invalid old password", status=400)

        values = prepare_user_fields(UserWrite(password=new_password, password_changing=True))
        if self.revoke_on_password_change:
            values["refresh_token"] = None
        self.storage.update_user_fields(user.id, values)
        logger.info("Password changed for user %s", user.id)

    def update_account(
        self,
        user_id: str,
        fullname: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        fields = {}
        if fullname is not None and fullname.strip():
            fields["fullname"] = fullname.strip()
        if email is not None and email.strip():
            fields["email"] = normalize_identity(email)
        if not fields:
            raise AccountError(ErrorKind.VALIDATION_ERROR, "fullname or email is required")

        if "email" in fields:
            owner = self.storage.find_user_by_username_or_email(email=fields["email"])
            if owner is not None and owner.id != user_id:
                raise AccountError(ErrorKind.CONFLICT, "Email already in use")

        try:
            self.storage.update_user_fields(user_id, prepare_user_fields(UserWrite(fields=fields)))
        except DuplicateUserError:
            raise AccountError(ErrorKind.CONFLICT, "Email already in use") from None
        return self._load(user_id)

    def update_media(self, user_id: str, field: str, local_path: Optional[str]) -> User:
        label = MEDIA_FIELDS[field]
        if not local_path:
            raise AccountError(ErrorKind.VALIDATION_ERROR, f"{label} file is missing")
        url = self._upload(local_path, label)
        self.storage.update_user_fields(user_id, prepare_user_fields(UserWrite(fields={field: url})))
        return self._load(user_id)
