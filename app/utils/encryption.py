"""Encryption utilities for payment data at rest (card tokens)."""

import base64

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from app.utils.exceptions import SecurityError


class EncryptionService:
    """
    Encryption service for sensitive payment data.

    Uses Fernet (symmetric encryption). Outside production a missing or
    invalid key disables encryption and values pass through unchanged.
    """

    def __init__(
        self, encryption_key: str | None = None, environment: str = "development"
    ) -> None:
        """
        Initialize encryption service.

        Args:
            encryption_key: Base64-encoded Fernet key
            environment: Deployment environment name
        """
        self.environment = environment
        self.fernet: Fernet | None = None
        self.enabled = False

        if encryption_key:
            try:
                self.fernet = Fernet(encryption_key.encode())
                self.enabled = True
            except ValueError as e:
                logger.error(f"Invalid encryption key: {e}")
                if self.is_production:
                    raise SecurityError(
                        "Invalid encryption key in production environment. "
                        "Encryption is required for security."
                    ) from e
        elif self.is_production:
            raise SecurityError(
                "Encryption key not configured in production environment. "
                "Set ENCRYPTION_KEY in .env file."
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext.

        Returns:
            Encrypted text (base64), or the plaintext when disabled (dev only)
        """
        if not self.enabled or self.fernet is None:
            if self.is_production:
                raise SecurityError(
                    "Encryption must be enabled in production. "
                    "Cannot save sensitive data without encryption."
                )
            logger.warning("Encryption disabled - returning plaintext (DEV ONLY)")
            return plaintext

        encrypted = self.fernet.encrypt(plaintext.encode())
        return base64.b64encode(encrypted).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt ciphertext produced by encrypt().

        Raises:
            SecurityError: Token is corrupt or was encrypted with another key
        """
        if not self.enabled or self.fernet is None:
            if self.is_production:
                raise SecurityError(
                    "Encryption must be enabled in production. "
                    "Cannot decrypt data without encryption service."
                )
            logger.warning("Encryption disabled - returning ciphertext as-is (DEV ONLY)")
            return ciphertext

        try:
            encrypted = base64.b64decode(ciphertext.encode())
            return self.fernet.decrypt(encrypted).decode()
        except (InvalidToken, ValueError) as e:
            logger.error(f"Decryption error: {type(e).__name__}")
            raise SecurityError("Decryption failed") from e

    @staticmethod
    def generate_key() -> str:
        """Generate new Fernet key (base64)."""
        return Fernet.generate_key().decode()


# Singleton instance
_encryption_service: EncryptionService | None = None


def get_encryption_service() -> EncryptionService:
    """Get encryption service singleton, initializing it from settings."""
    if _encryption_service is None:
        from app.config.settings import settings

        return init_encryption_service(settings.encryption_key, settings.environment)
    return _encryption_service


def init_encryption_service(
    encryption_key: str | None = None, environment: str = "development"
) -> EncryptionService:
    """Initialize encryption service singleton."""
    global _encryption_service

    _encryption_service = EncryptionService(encryption_key, environment)

    return _encryption_service
