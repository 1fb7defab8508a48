from dataclasses import dataclass, field
import logging
import os

from cryptography.fernet import Fernet, InvalidToken


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloudCredentials:
    server: str
    username: str
    password: str = field(repr=False)


class FernetCredentialCipher:
    """Encrypts and decrypts the stored cloud account password"""

    def __init__(self, key: str | None = None):
        key = key or os.getenv("FERNET_KEY")
        if not key:
            raise ValueError("FERNET_KEY environment variable is not set")

        self.fernet = Fernet(key.encode())

    def encrypt_password(self, password: str) -> str:
        return self.fernet.encrypt(password.encode()).decode()

    def decrypt_password(self, token: str) -> str:
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            logger.error("Unable to decrypt cloud password token")
            raise ValueError("Cloud password token is invalid for FERNET_KEY") from e


def load_cloud_credentials(cipher: FernetCredentialCipher | None = None) -> CloudCredentials:
    """Build cloud credentials from CLOUD_SERVER, CLOUD_USERNAME and CLOUD_PASSWORD_TOKEN"""
    username = os.getenv("CLOUD_USERNAME")
    token = os.getenv("CLOUD_PASSWORD_TOKEN")
    if not username or not token:
        raise ValueError(
            "CLOUD_USERNAME and CLOUD_PASSWORD_TOKEN environment variables must be set"
        )

    cipher = cipher or FernetCredentialCipher()
    return CloudCredentials(
        server=os.getenv("CLOUD_SERVER", "openshift.redhat.com"),
        username=username,
        password=cipher.decrypt_password(token),
    )
